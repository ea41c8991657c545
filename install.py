#!/usr/bin/env python3
"""Set up a local virtual environment for lingti-bot.

Usage:
    python install.py          # Runtime dependencies only
    python install.py --dev    # Also installs the test extra
"""

import os
import platform
import shutil
import subprocess
import sys

MIN_PYTHON = (3, 11)
CONFIG_TEMPLATES = [("config.example.yaml", "config.yaml"), (".env.example", ".env")]


def _venv_paths(project_dir: str) -> tuple[str, str]:
    venv_dir = os.path.join(project_dir, ".venv")
    bin_dir = "Scripts" if platform.system() == "Windows" else "bin"
    return venv_dir, os.path.join(venv_dir, bin_dir, "pip")


def _copy_templates(project_dir: str) -> None:
    for template, target in CONFIG_TEMPLATES:
        template_path = os.path.join(project_dir, template)
        target_path = os.path.join(project_dir, target)
        if os.path.exists(target_path):
            print(f"{target} already exists, leaving it alone.")
        elif os.path.exists(template_path):
            shutil.copy(template_path, target_path)
            print(f"Wrote {target} from {template}")


def main() -> None:
    if sys.version_info < MIN_PYTHON:
        sys.exit(
            f"Error: lingti-bot needs Python {MIN_PYTHON[0]}.{MIN_PYTHON[1]} or newer "
            f"(found {sys.version_info.major}.{sys.version_info.minor})."
        )

    dev = "--dev" in sys.argv
    project_dir = os.path.dirname(os.path.abspath(__file__))
    venv_dir, pip = _venv_paths(project_dir)

    if os.path.isdir(venv_dir):
        print("Reusing existing .venv")
    else:
        print("Creating .venv ...")
        subprocess.check_call([sys.executable, "-m", "venv", venv_dir])

    subprocess.check_call([pip, "install", "--upgrade", "pip"])
    target = ".[test]" if dev else "."
    print(f"Installing lingti-bot ({'editable, with test extra' if dev else 'runtime'}) ...")
    subprocess.check_call([pip, "install", "-e", target] if dev else [pip, "install", target], cwd=project_dir)

    _copy_templates(project_dir)

    activate = r".\.venv\Scripts\activate" if platform.system() == "Windows" else "source .venv/bin/activate"
    print()
    print("lingti-bot is installed.")
    print()
    print("Next:")
    print("  1. Put your provider key in .env, e.g.")
    print("       AI_API_KEY=sk-ant-...        (Claude API key or `claude setup-token` output)")
    print("  2. Pick a provider and model in config.yaml (ai.provider / ai.model)")
    print(f"  3. {activate}")
    print("  4. lingti-bot config-check     # validate the configuration")
    print("  5. lingti-bot chat             # talk to the agent in this terminal")
    if dev:
        print("  6. pytest                      # run the test suite")
    print()


if __name__ == "__main__":
    main()
