"""Iterative tool execution loop over the provider abstraction."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from lingti_bot.ai.models import ChatRequest, Message, ToolDefinition
from lingti_bot.ai.providers.base import Provider
from lingti_bot.ai.tools.bridge import ToolBridge
from lingti_bot.core.progress import report_progress
from lingti_bot.core.types import FinishReason, LoopState, Role
from lingti_bot.log import get_logger

logger = get_logger(__name__)

MAX_TOOL_ROUNDS = 10


def iteration_limit_notice(max_rounds: int) -> str:
    return f"⚠️ Reached the tool-call limit ({max_rounds} rounds) before finishing."


@dataclass
class LoopOutcome:
    state: LoopState
    text: str
    rounds: int


async def run_tool_loop(
    provider: Provider,
    bridge: ToolBridge,
    messages: list[Message],
    system: str,
    tools: list[ToolDefinition],
    max_tokens: int,
    max_rounds: int = MAX_TOOL_ROUNDS,
    tool_timeout: float = 60.0,
    request_timeout: float | None = None,
    thinking_budget: int = 0,
    thinking_prompt: str = "",
    verbose: bool = False,
) -> LoopOutcome:
    """Call the model and run requested tools until it gives a final answer.

    *messages* is the working list (history plus the new user message); it is
    extended in place with assistant and tool-result messages. Provider errors
    propagate to the caller. When *max_rounds* model calls pass without a final
    answer the outcome is ABORTED with the last partial text plus a limit notice.
    """
    rounds = 0
    input_tokens = output_tokens = 0
    partial = ""
    state = LoopState.AWAITING_MODEL

    while rounds < max_rounds:
        request = ChatRequest(
            messages=list(messages),
            tools=tools,
            system_prompt=system,
            max_tokens=max_tokens,
            thinking_budget=thinking_budget,
            thinking_prompt=thinking_prompt,
        )
        response = await asyncio.wait_for(provider.chat(request), request_timeout)
        rounds += 1
        input_tokens += response.input_tokens
        output_tokens += response.output_tokens
        state = _transition(state, LoopState.MODEL_RESPONDED, rounds)

        if response.finish_reason != FinishReason.TOOL_USE or not response.tool_calls:
            state = _transition(state, LoopState.DONE, rounds)
            messages.append(Message.assistant(response.content))
            logger.info(
                "tool_loop_done", rounds=rounds, input_tokens=input_tokens, output_tokens=output_tokens
            )
            return LoopOutcome(state, response.content, rounds)

        if response.content:
            partial = response.content

        state = _transition(state, LoopState.TOOLS_PENDING, rounds, calls=len(response.tool_calls))
        messages.append(
            Message(
                role=Role.ASSISTANT,
                content=response.content,
                tool_calls=tuple(response.tool_calls),
                reasoning=response.reasoning,
            )
        )

        if verbose:
            for call in response.tool_calls:
                report_progress(f"🔧 {call.name}")

        # Execute tool calls concurrently; results keep call order.
        results = await asyncio.gather(
            *(bridge.execute(call, tool_timeout) for call in response.tool_calls)
        )
        for result in results:
            messages.append(Message.from_tool_result(result))
        errors = sum(1 for r in results if r.is_error)
        state = _transition(state, LoopState.TOOLS_EXECUTED, rounds, errors=errors)
        state = _transition(state, LoopState.AWAITING_MODEL, rounds)

    state = _transition(state, LoopState.ABORTED, rounds)
    logger.warning(
        "tool_loop_aborted",
        rounds=rounds,
        max_rounds=max_rounds,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
    )
    notice = iteration_limit_notice(max_rounds)
    text = f"{partial}\n\n{notice}" if partial else notice
    return LoopOutcome(state, text, rounds)


def _transition(current: LoopState, new: LoopState, rounds: int, **fields: int) -> LoopState:
    logger.debug("tool_loop_state", previous=current.value, state=new.value, round=rounds, **fields)
    return new
