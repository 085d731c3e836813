"""Builds claude argument vectors from a Prompt and PromptOptions.

The prompt body is never a command-line argument on the default path: it
is returned as Command.input_payload and the arguments end with ``-p -``
so the agent reads it from stdin. This sidesteps argument-length limits
and keeps prompt text away from any shell.
"""

from __future__ import annotations

from pathlib import Path

from .types import Command, OutputFormat, Prompt, PromptOptions

__all__ = ["CommandBuilder", "STDIN_MARKER"]

# Print mode, reading the prompt from stdin
STDIN_MARKER = ("-p", "-")


class CommandBuilder:
    """Pure transformation from request objects to a Command.

    Example:
        builder = CommandBuilder("/usr/local/bin/claude")
        command = builder.build(Prompt("Explain this repo"), PromptOptions(model="sonnet"))
        # command.args  -> ("/usr/local/bin/claude", "--output-format", ..., "-p", "-")
        # command.input_payload -> "Explain this repo"
    """

    def __init__(self, binary_path: str | Path) -> None:
        self.binary_path = str(binary_path)

    def build(self, prompt: Prompt, options: PromptOptions | None = None) -> Command:
        """Build the stdin-fed command used for real invocations."""
        options = options or PromptOptions()
        args = [self.binary_path]
        args.extend(self._option_args(options, include_print=False))
        args.extend(self._prompt_args(prompt))
        args.extend(STDIN_MARKER)
        return Command(tuple(args), prompt.text)

    def build_positional(self, prompt: Prompt, options: PromptOptions | None = None) -> Command:
        """Build a command carrying the prompt as its last argument.

        Only for diagnostics and tests; large or hostile prompts belong on stdin.
        """
        options = options or PromptOptions()
        args = [self.binary_path]
        args.extend(self._option_args(options, include_print=True))
        args.extend(self._prompt_args(prompt))
        args.append(prompt.text)
        return Command(tuple(args))

    def build_bare(self, *extra: str) -> Command:
        """Just the binary plus ``extra``, no stdin (e.g. ``--version``)."""
        return Command((self.binary_path, *extra))

    def _option_args(self, options: PromptOptions, *, include_print: bool) -> list[str]:
        args: list[str] = []

        if include_print and options.print_mode:
            args.append("--print")
        if options.skip_permissions:
            args.append("--dangerously-skip-permissions")

        args.extend(["--output-format", options.output_format.value])
        # stream-json in print mode requires --verbose
        if options.output_format is OutputFormat.STREAM_JSON:
            args.append("--verbose")

        if options.model:
            args.extend(["--model", options.model])
        if options.max_turns is not None:
            args.extend(["--max-turns", str(options.max_turns)])

        for tool in options.allowed_tools:
            args.extend(["--allowedTools", tool])
        for tool in options.disallowed_tools:
            args.extend(["--disallowedTools", tool])

        return args

    def _prompt_args(self, prompt: Prompt) -> list[str]:
        args: list[str] = []

        if prompt.agent_name:
            args.extend(["--agent", prompt.agent_name])
        if prompt.system_prompt:
            args.extend(["--system-prompt", prompt.system_prompt])
        for path in prompt.context_files:
            args.extend(["--add-dir", str(path)])

        return args
