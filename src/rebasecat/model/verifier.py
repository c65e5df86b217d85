"""Verification agent: judges a resolved file."""

from dataclasses import dataclass, field

from pydantic import BaseModel, Field
from pydantic_ai import Agent
from pydantic_ai.exceptions import UsageLimitExceeded
from pydantic_ai.usage import RunUsage

from rebasecat.core.config import LLMConfig
from rebasecat.core.log import logger
from rebasecat.model.provider import (
    inject_provider_params,
    log_agent_failure,
    log_message_history,
    truncate,
    usage_limits,
)
from rebasecat.rebase.context import AgentUsage

DEFAULT_SYSTEM_PROMPT = (
    "You review files after an automated merge conflict resolution. "
    "Reject files with leftover conflict markers, duplicated code or "
    "broken syntax."
)
DEFAULT_TASK_PROMPT = (
    "Verify the resolution of {conflict_file} "
    "(attempt {attempt} of {max_attempts}).\n\n"
    "Resolved content:\n{file_content}"
)
DEFAULT_RETRIES = 2
DEFAULT_MAX_CONTENT_CHARS = 8000
# One request plus one per output retry
DEFAULT_LIMITS = {
    'request_limit': DEFAULT_RETRIES + 1,
    'tool_calls_limit': None,
    'total_tokens_limit': 100_000,
}


class VerificationVerdict(BaseModel):
    """Structured output of the verification agent."""

    passed: bool = Field(description="True if the resolution is correct")
    issues: list[str] = Field(
        default_factory=list,
        description="Problems found; empty when passed",
    )


@dataclass(frozen=True)
class VerificationOutcome:
    passed: bool
    issues: list[str] = field(default_factory=list)
    error: str | None = None
    usage: AgentUsage | None = None


class VerificationAgent:
    """Asks an LLM whether a resolved file is acceptable."""

    def __init__(self, llm_config: LLMConfig, config=None):
        self.llm_config = llm_config
        self.config = config

        prompts = config.prompts.get('verifier', {}) if config else {}
        self.system_prompt = prompts.get('system', DEFAULT_SYSTEM_PROMPT)
        self.task_prompt = prompts.get('task', DEFAULT_TASK_PROMPT)
        self.retries = DEFAULT_RETRIES
        self.max_content_chars = DEFAULT_MAX_CONTENT_CHARS
        if config:
            self.retries = config.agent_setting(
                'verifier', 'retries', DEFAULT_RETRIES
            )
            self.max_content_chars = config.agent_setting(
                'verifier', 'max_content_chars', DEFAULT_MAX_CONTENT_CHARS
            )
        self.usage_limits = usage_limits(config, 'verifier', DEFAULT_LIMITS)

    def _create_agent(self) -> Agent:
        with inject_provider_params(self.llm_config):
            return Agent(
                self.llm_config.model,
                output_type=VerificationVerdict,
                system_prompt=self.system_prompt,
                retries=self.retries,
            )

    async def verify(
        self, path: str, content: str, attempt: int, max_attempts: int
    ) -> VerificationOutcome:
        prompt = self.task_prompt.format(
            conflict_file=path,
            file_content=truncate(content, self.max_content_chars),
            attempt=attempt,
            max_attempts=max_attempts,
        )

        run_usage = RunUsage()
        try:
            result = await self._create_agent().run(
                prompt, usage_limits=self.usage_limits, usage=run_usage
            )
        except UsageLimitExceeded as e:
            logger.warn(f"Verifier for {path} stopped: {e}")
            return VerificationOutcome(
                passed=False,
                error=f"Usage limit exceeded: {e}",
                usage=AgentUsage.from_run(run_usage),
            )
        except Exception as e:
            log_agent_failure("Verifier", e)
            return VerificationOutcome(
                passed=False,
                error=f"{type(e).__name__}: {e}",
                usage=AgentUsage.from_run(run_usage),
            )

        log_message_history("Verifier", result.all_messages())
        verdict = result.output
        usage = AgentUsage.from_run(result.usage())
        logger.debug(
            f"Verifier verdict for {path}: "
            f"{'passed' if verdict.passed else 'rejected'}",
            issues=verdict.issues,
            usage=str(usage),
        )
        return VerificationOutcome(
            passed=verdict.passed, issues=list(verdict.issues), usage=usage
        )
