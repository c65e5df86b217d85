"""Resolution agent: writes a conflict-free version of one file."""

from dataclasses import dataclass
from pathlib import Path

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
from rebasecat.tools import workspace_tools
from rebasecat.tools.parser import parse
from rebasecat.tools.workspace import Workspace

DEFAULT_SYSTEM_PROMPT = "You are a git merge conflict resolver."
DEFAULT_TASK_PROMPT = (
    "Resolve the git merge conflicts in {conflict_file}.\n\n"
    "Current content:\n{file_content}\n\n"
    "Write the resolved file with write_file, or pick a side with git, "
    "then call submit_resolution."
)
DEFAULT_RETRIES = 5
DEFAULT_MAX_CONTENT_CHARS = 4000
DEFAULT_LIMITS = {
    'request_limit': 30,
    'tool_calls_limit': 60,
    'total_tokens_limit': 300_000,
}


@dataclass(frozen=True)
class ResolutionOutcome:
    """Whether a resolution was written to disk, or why not."""

    ok: bool
    error: str | None = None
    usage: AgentUsage | None = None


class ResolutionAgent:
    """Resolves one conflicted file with a tool-using LLM agent.

    The agent edits the file in place through the workspace tools
    and must finish by calling submit_resolution.
    """

    def __init__(self, llm_config: LLMConfig, workdir: Path, config=None):
        """Initialize resolver.

        Args:
            llm_config: Model, api_key and base_url
            workdir: Git working directory holding the conflicts
            config: Optional Config for prompts, agent settings and
                the command whitelist
        """
        self.llm_config = llm_config
        self.workdir = Path(workdir)
        self.config = config

        prompts = config.prompts.get('resolver', {}) if config else {}
        self.system_prompt = prompts.get('system', DEFAULT_SYSTEM_PROMPT)
        self.task_prompt = prompts.get('task', DEFAULT_TASK_PROMPT)
        self.retries = DEFAULT_RETRIES
        self.max_content_chars = DEFAULT_MAX_CONTENT_CHARS
        if config:
            self.retries = config.agent_setting(
                'resolver', 'retries', DEFAULT_RETRIES
            )
            self.max_content_chars = config.agent_setting(
                'resolver', 'max_content_chars', DEFAULT_MAX_CONTENT_CHARS
            )
        self.usage_limits = usage_limits(config, 'resolver', DEFAULT_LIMITS)

    def _create_agent(self) -> Agent:
        with inject_provider_params(self.llm_config):
            return Agent(
                self.llm_config.model,
                deps_type=Workspace,
                tools=workspace_tools,
                system_prompt=self.system_prompt,
                retries=self.retries,
            )

    def build_prompt(
        self, path: str, content: str, failure_context: str | None = None
    ) -> str:
        prompt = self.task_prompt.format(
            conflict_file=path,
            file_content=truncate(content, self.max_content_chars),
        )

        try:
            hunks = parse(content)
        except ValueError as e:
            logger.debug(f"Could not parse conflict hunks in {path}: {e}")
        else:
            if hunks:
                where = ', '.join(
                    f"lines {h.start_line}-{h.end_line}" for h in hunks
                )
                prompt += f"\n\nThe file has {len(hunks)} conflict hunks: {where}."

        if failure_context:
            prompt += (
                f"\n\nPREVIOUS ATTEMPT FAILED VERIFICATION:\n"
                f"{failure_context}\n\n"
                f"Please try again, taking these issues into account."
            )
        return prompt

    async def resolve(
        self, path: str, content: str, failure_context: str | None = None
    ) -> ResolutionOutcome:
        """Run the agent on one file.

        Args:
            path: Conflicted file, relative to the working directory
            content: Current content, including conflict markers
            failure_context: Verifier issues from the previous attempt

        Returns:
            ResolutionOutcome; ok means the resolution is on disk
        """
        workspace = Workspace(self.workdir, path, self.config)
        prompt = self.build_prompt(path, content, failure_context)

        logger.debug(
            f"Creating resolver agent with model: {self.llm_config.model}",
            api_key_provided=self.llm_config.api_key is not None,
            base_url=self.llm_config.base_url,
            retries=self.retries,
        )
        logger.debug(f"Resolver prompt length: {len(prompt)} chars")

        # Filled in place by the run, so failed runs still report usage
        run_usage = RunUsage()
        stream = None
        try:
            agent = self._create_agent()
            async with agent.run_stream(
                prompt,
                deps=workspace,
                usage_limits=self.usage_limits,
                usage=run_usage,
            ) as stream:
                output = await stream.get_output()
                log_message_history("Resolver", stream.all_messages())
                run_usage = stream.usage()
        except UsageLimitExceeded as e:
            if stream is not None:
                log_message_history("Resolver", stream.all_messages())
            logger.warn(f"Resolver for {path} stopped: {e}")
            return ResolutionOutcome(
                ok=False,
                error=f"Usage limit exceeded: {e}",
                usage=AgentUsage.from_run(run_usage),
            )
        except Exception as e:
            if stream is not None:
                log_message_history("Resolver", stream.all_messages())
            log_agent_failure("Resolver", e)
            return ResolutionOutcome(
                ok=False,
                error=f"{type(e).__name__}: {e}",
                usage=AgentUsage.from_run(run_usage),
            )

        usage = AgentUsage.from_run(run_usage)
        logger.debug(f"Resolver output: {str(output)[:200]}", usage=str(usage))
        if not workspace.submitted:
            return ResolutionOutcome(
                ok=False,
                error="Resolution agent finished without submitting a resolution",
                usage=usage,
            )
        return ResolutionOutcome(ok=True, usage=usage)
