"""
mcpchat CLI - Interactive chat with an MCP tool server.

Run `mcpchat path/to/server.py` to connect to the server and start chatting.
Type `exit` (or press Ctrl+D) to quit.
"""

import logging
import sys
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from mcpchat import __version__
from mcpchat.core.session import ArgumentParseError, ChatSession
from mcpchat.logging_config import setup_logging
from mcpchat.providers.base import ProviderError, ProviderFactory
from mcpchat.toolserver.client import ToolServer, ToolServerError
from mcpchat.toolserver.transport import MCPConnectionError
from mcpchat.validation.config import Config, ConfigError

console = Console()
logger = logging.getLogger(__name__)

USAGE = "Usage: mcpchat <path_to_server_script>"
PROMPT = "Query (or 'exit' to quit): "
EXIT_TOKEN = "exit"

# Failures that end one query but leave the session usable.
QUERY_ERRORS = (ArgumentParseError, ToolServerError, ProviderError)


class ChatREPL:
    """
    Line-based chat loop around a connected ChatSession.

    Every line except the exit token is sent to the session as an
    independent query. The REPL never tears the session down; the caller
    owns cleanup.
    """

    def __init__(self, session: ChatSession):
        self.session = session

    def _get_input(self) -> str:
        """Print the prompt and read one line."""
        console.print()
        console.print(PROMPT, end="", markup=False, highlight=False, soft_wrap=True)
        return input()

    def _execute_query(self, query: str) -> None:
        try:
            with console.status("[bold blue]Thinking...[/bold blue]", spinner="dots"):
                response = self.session.process_query(query)
        except QUERY_ERRORS as e:
            logger.debug("Query failed", exc_info=True)
            console.print(f"[red]Error: {escape(str(e))}[/red]")
            return
        except KeyboardInterrupt:
            console.print("\n[yellow]Interrupted.[/yellow]")
            return

        console.print()
        console.print("Response:")
        console.print(response, markup=False, highlight=False, soft_wrap=True)

    def run(self) -> None:
        """Run until the exit token, end of input, or Ctrl+C at the prompt."""
        while True:
            try:
                query = self._get_input()
            except EOFError:
                console.print()
                break
            except KeyboardInterrupt:
                console.print()
                break

            if query == EXIT_TOKEN:
                break

            self._execute_query(query)


def _build_overrides(model: Optional[str], log_level: Optional[str]) -> dict:
    overrides: dict = {}
    if model:
        overrides.setdefault("agent", {})["model"] = model
    if log_level:
        overrides.setdefault("logging", {})["level"] = log_level
    return overrides


def _fail(message: str) -> None:
    console.print(f"[red]{escape(message)}[/red]")
    sys.exit(1)


@click.command()
@click.option("--version", "-v", is_flag=True, help="Show version")
@click.option("--model", "-m", default=None, help="Model to use (e.g. gpt-4o, groq/llama-3.3-70b-versatile)")
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR or CRITICAL")
@click.argument("server_script", required=False)
def cli(version: bool, model: Optional[str], log_level: Optional[str], server_script: Optional[str]) -> None:
    """
    mcpchat - chat with a model that can call MCP server tools.

    \b
    Examples:
        mcpchat weather_server.py           # Python server
        mcpchat build/index.js              # Node server
        mcpchat -m groq/llama-3.3-70b-versatile server.py
    """
    if version:
        console.print(f"mcpchat v{__version__}")
        return

    if not server_script:
        console.print(USAGE, markup=False)
        return

    try:
        config = Config.load(overrides=_build_overrides(model, log_level))
        settings = config.merged
        setup_logging(settings.logging.level, settings.logging.file)
        provider = ProviderFactory.create(settings.agent.model, config)
        provider.require_api_key()
    except ConfigError as e:
        _fail(f"Error: {e}")
        return

    session = ChatSession(
        provider,
        tool_server=ToolServer(client_name="mcpchat", client_version=__version__),
        max_tool_rounds=settings.agent.max_tool_rounds,
    )

    connected = False
    error: Optional[str] = None
    try:
        names = session.connect(server_script)
        connected = True
        console.print(f"Connected to server with tools: {names}", markup=False, highlight=False, soft_wrap=True)
        ChatREPL(session).run()
    except ConfigError as e:
        error = f"Error: {e}"
    except MCPConnectionError as e:
        if connected:
            error = f"Lost connection to MCP server: {e}"
        else:
            error = f"Failed to connect to MCP server: {e}"
    finally:
        session.cleanup()

    if error:
        _fail(error)


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
