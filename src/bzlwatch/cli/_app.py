"""The command-line interface for bzlwatch."""

import sys
from collections.abc import Mapping, Sequence
from typing import Annotated

import anyio
from cyclopts import App, Parameter
from rich.console import Console

from bzlwatch import __version__
from bzlwatch._logging import create_logger, set_logger
from bzlwatch._models import InvocationConfig
from bzlwatch.config import load_config
from bzlwatch.exceptions import BzlwatchError

from ._serve import serve
from ._shared import ExitCode, get_error_console, print_error

HELP = "Re-run a bazel build, test or run whenever its inputs change."

# Handled by the app only as the first token; anywhere else they belong to
# the build tool.
APP_FLAGS: frozenset[str] = frozenset({"-h", "--help", "--version"})


def run_watch(
    tokens: Sequence[str],
    *,
    environ: Mapping[str, str] | None = None,
    error_console: Console | None = None,
) -> ExitCode:
    """Parse tokens and configuration, then watch until interrupted.

    Fatal errors are printed to stderr as a single line.

    Args:
        tokens: ``<action> [flags...] <target>...``
        environ: Environment to read configuration from. Defaults to os.environ.
        error_console: Console for error output.

    Returns:
        The process exit code.
    """
    if error_console is None:
        error_console = get_error_console()

    try:
        invocation = InvocationConfig.from_argv(tokens)
        config = load_config(environ)
        logger = create_logger(
            level=config.logging.level.value,
            log_format=config.logging.format.value,  # type: ignore[arg-type]
        )
        set_logger(logger)
        anyio.run(serve, invocation, config, logger)
    except BzlwatchError as e:
        print_error(str(e), console=error_console)
        return ExitCode.ERROR
    except KeyboardInterrupt:
        return ExitCode.INTERRUPTED

    return ExitCode.SUCCESS


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    exit_on_error: bool = True,
) -> App:
    if console is None:
        console = Console()
    if error_console is None:
        error_console = get_error_console()
    app = App(
        name="bzlwatch",
        help=HELP,
        help_on_error=True,
        version=__version__,
        console=console,
        error_console=error_console,
        exit_on_error=exit_on_error,
    )

    @app.default
    def watch(  # pyright: ignore[reportUnusedFunction]
        *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
    ) -> None:
        """Watch the dependencies of targets and rerun an action on change.

        Usage: bzlwatch <action> [flags...] <target>...

        Every token after the action is passed through to the build tool.
        Leading flags are skipped when working out which targets to watch.

        Args:
            tokens: The action followed by its flags and targets.
        """
        code = run_watch(tokens, error_console=error_console)
        if code != ExitCode.SUCCESS:
            raise SystemExit(code)

    return app


def main(tokens: Sequence[str] | None = None) -> None:
    """Default entrypoint for the `bzlwatch` CLI.

    Only a leading help or version flag is parsed by cyclopts. Any other
    command line goes to run_watch exactly as given, so ``--`` and flags
    such as ``--help`` after the action reach the build tool unchanged.

    Args:
        tokens: Command line tokens. Defaults to ``sys.argv[1:]``.
    """
    argv = list(sys.argv[1:] if tokens is None else tokens)
    if argv and argv[0] in APP_FLAGS:
        app = create_app()
        app(argv)
        return

    code = run_watch(argv)
    if code != ExitCode.SUCCESS:
        raise SystemExit(code)
