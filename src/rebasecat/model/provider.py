"""Provider setup and conversation logging shared by both agents."""

import traceback
from contextlib import contextmanager

from pydantic_ai import providers
from pydantic_ai.usage import UsageLimits

from rebasecat.core.config import LLMConfig
from rebasecat.core.log import logger


@contextmanager
def inject_provider_params(llm_config: LLMConfig):
    """Pass api_key and base_url to the provider pydantic-ai creates.

    pydantic-ai builds the provider from the 'provider:model' string
    with no way to hand it arguments, so infer_provider is patched
    for the duration of the block.
    """
    kwargs = {}
    if llm_config.api_key:
        kwargs['api_key'] = llm_config.api_key
    if llm_config.base_url:
        kwargs['base_url'] = llm_config.base_url

    if not kwargs:
        yield
        return

    original_infer_provider = providers.infer_provider

    def patched_infer_provider(provider_name: str):
        provider_class = providers.infer_provider_class(provider_name)
        return provider_class(**kwargs)

    try:
        providers.infer_provider = patched_infer_provider
        yield
    finally:
        providers.infer_provider = original_infer_provider


def usage_limits(config, agent: str, defaults: dict) -> UsageLimits:
    """Build the UsageLimits of one agent run.

    ``request_limit``, ``tool_calls_limit`` and ``total_tokens_limit``
    are read from the agent's section of the agents config, falling
    back to ``defaults``. A value of null disables that limit.
    """
    limits = {}
    for key in ('request_limit', 'tool_calls_limit', 'total_tokens_limit'):
        limits[key] = defaults.get(key)
        if config:
            limits[key] = config.agent_setting(agent, key, limits[key])
    return UsageLimits(**limits)


def truncate(content: str, limit: int) -> str:
    """Cut content to limit characters, saying so when it does."""
    if limit <= 0 or len(content) <= limit:
        return content
    return content[:limit] + f"\n... [truncated, {len(content)} chars total]"


def log_message_history(agent_name: str, messages: list):
    """Log an agent conversation part by part.

    Tool calls and returns are correlated by tool_call_id.
    """
    logger.info(
        f"{agent_name} conversation: {len(messages)} messages",
        message_count=len(messages),
    )

    tool_calls = {}
    for i, msg in enumerate(messages, 1):
        for part in getattr(msg, 'parts', []):
            kind = getattr(part, 'part_kind', type(part).__name__)

            if kind == 'tool-call':
                tool_calls[part.tool_call_id] = part.tool_name
                logger.info(
                    f"  [{i}] ToolCall: {part.tool_name}",
                    tool_name=part.tool_name,
                    tool_call_id=part.tool_call_id,
                    args=part.args,
                )
            elif kind == 'tool-return':
                text = str(part.content)
                logger.info(
                    f"  [{i}] ToolReturn [{part.tool_name}]: {text[:200]}"
                    + ('...' if len(text) > 200 else ''),
                    tool_name=part.tool_name,
                    tool_call_id=part.tool_call_id,
                    correlation_tool=tool_calls.get(part.tool_call_id, 'unknown'),
                    content_size=len(text),
                )
                logger.trace(
                    f"  [{i}] ToolReturn [{part.tool_name}] full content:\n{text}"
                )
            elif kind == 'retry-prompt':
                logger.warning(
                    f"  [{i}] RetryPrompt [{part.tool_name or 'general'}]",
                    tool_name=part.tool_name,
                    retry_content=str(part.content),
                )
            elif kind in ('user-prompt', 'text', 'system-prompt'):
                content = str(getattr(part, 'content', ''))
                logger.debug(
                    f"  [{i}] {kind}: {content[:500]}",
                    content_length=len(content),
                )
            else:
                logger.spew(f"  [{i}] {kind}: {part}")


def log_agent_failure(agent_name: str, e: Exception):
    """Log an agent failure with its traceback and cause chain."""
    logger.error(f"{agent_name} LLM call failed", _exc_info=e)
    logger.debug(
        "Exception traceback:\n"
        + ''.join(traceback.format_exception(type(e), e, e.__traceback__))
    )

    for attr in ('message', 'body'):
        if hasattr(e, attr):
            logger.error(f"Exception {attr}: {getattr(e, attr)}")

    cause = e.__cause__
    depth = 1
    while cause:
        logger.error(f"Exception cause chain (depth {depth}): {cause!r}")
        cause = cause.__cause__
        depth += 1
