"""CLI entry point for copilotchat."""

from __future__ import annotations

import argparse
import logging
import threading
from dataclasses import replace
from pathlib import Path

from rich.console import Console

from copilotchat import __version__
from copilotchat.client import AskResult, Copilot
from copilotchat.config import load_settings
from copilotchat.errors import CopilotError
from copilotchat.render import EmbeddingItem

console = Console()


def _file_item(path: str) -> EmbeddingItem:
    p = Path(path).expanduser()
    return EmbeddingItem(
        filename=str(p),
        filetype=p.suffix.lstrip("."),
        content=p.read_text(encoding="utf-8", errors="replace"),
    )


def _parse_rows(raw: str | None) -> tuple[int, int]:
    if not raw:
        return 0, 0
    start, _, end = raw.partition(":")
    start_row = int(start)
    return start_row, int(end) if end else start_row


def _selection(path: str | None, rows: tuple[int, int]) -> tuple[str, str, str]:
    """Return (selection, filename, filetype) for ``--selection``."""
    if not path:
        return "", "", ""
    item = _file_item(path)
    text = item.content or ""
    start_row, end_row = rows
    if start_row > 0:
        lines = text.split("\n")
        text = "\n".join(lines[start_row - 1:end_row])
    return text, item.filename, item.filetype


def _ask_in_worker(copilot: Copilot, prompt: str, **kwargs) -> AskResult | None:
    """Run ``ask`` on a worker thread so Ctrl-C can abandon it."""
    outcome: dict[str, object] = {}

    def run() -> None:
        try:
            outcome["result"] = copilot.ask(
                prompt,
                on_progress=lambda delta: console.print(delta, end="", markup=False, highlight=False),
                **kwargs,
            )
        except CopilotError as exc:
            outcome["error"] = exc

    worker = threading.Thread(target=run, daemon=True)
    worker.start()
    while worker.is_alive():
        try:
            worker.join(0.1)
        except KeyboardInterrupt:
            if copilot.stop():
                console.print("\n[yellow]stopped[/yellow]")
            return None

    console.print()
    if "error" in outcome:
        raise outcome["error"]  # type: ignore[misc]
    return outcome.get("result")  # type: ignore[return-value]


def _repl(copilot: Copilot, ask_kwargs: dict) -> None:
    console.print(f"[bold]copilotchat {__version__}[/bold]  (/reset, /models, /quit)")
    while True:
        try:
            prompt = console.input("[bold cyan]> [/bold cyan]").strip()
        except (EOFError, KeyboardInterrupt):
            console.print()
            return
        if not prompt:
            continue
        if prompt in ("/quit", "/exit"):
            return
        if prompt == "/reset":
            copilot.reset()
            console.print("[dim]history cleared[/dim]")
            continue
        if prompt == "/models":
            for model_id in copilot.list_models():
                console.print(model_id)
            continue
        try:
            _report(_ask_in_worker(copilot, prompt, **ask_kwargs))
        except CopilotError as exc:
            console.print(f"[red]{exc}[/red]")


def _report(result: AskResult | None) -> None:
    if result is None:
        return
    used = result.tokens_used if result.tokens_used is not None else "?"
    console.print(f"[dim]tokens: {used}/{result.max_tokens}[/dim]")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="copilotchat",
        description="Chat with GitHub Copilot from the terminal.",
    )
    parser.add_argument(
        "-V", "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument("prompt", nargs="?", help="Ask once and exit. Omit for an interactive session.")
    parser.add_argument("-m", "--model", default=None, help="Chat model id (see --models).")
    parser.add_argument("-t", "--temperature", type=float, default=None)
    parser.add_argument("-s", "--system-prompt", default=None, help="Replace the default system prompt.")
    parser.add_argument(
        "-f", "--file",
        action="append",
        default=[],
        help="Add a file as context. Repeatable; earlier files win when space is short.",
    )
    parser.add_argument("--selection", default=None, help="File whose content is sent as the active selection.")
    parser.add_argument("--rows", default=None, help="START[:END] rows of --selection (1-based).")
    parser.add_argument("--history", default=None, help="Load and save the conversation under this name.")
    parser.add_argument("--history-dir", default=None, help="Directory for saved conversations.")
    parser.add_argument("--models", action="store_true", help="List available chat models and exit.")
    parser.add_argument("--proxy", default=None, help="HTTP(S) proxy URL.")
    parser.add_argument("--insecure", action="store_true", help="Skip TLS certificate verification.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = load_settings()
    overrides: dict[str, object] = {}
    if args.proxy:
        overrides["proxy"] = args.proxy
    if args.insecure:
        overrides["allow_insecure"] = True
    if args.history_dir:
        overrides["history_dir"] = args.history_dir
    settings = replace(settings, **overrides)

    copilot = Copilot(settings)
    try:
        if args.models:
            for model_id in copilot.list_models():
                console.print(model_id)
            return 0

        if args.history:
            copilot.load(args.history)

        start_row, end_row = _parse_rows(args.rows)
        selection, filename, filetype = _selection(args.selection, (start_row, end_row))
        ask_kwargs = {
            "selection": selection,
            "filename": filename,
            "filetype": filetype,
            "start_row": start_row,
            "end_row": end_row,
            "embeddings": [_file_item(f) for f in args.file],
            "system_prompt": args.system_prompt,
            "model": args.model,
            "temperature": args.temperature,
        }

        if args.prompt:
            _report(_ask_in_worker(copilot, args.prompt, **ask_kwargs))
        else:
            _repl(copilot, ask_kwargs)

        if args.history:
            copilot.save(args.history)
        return 0
    except CopilotError as exc:
        console.print(f"[red]{exc}[/red]")
        return 1
    finally:
        copilot.close()


if __name__ == "__main__":
    raise SystemExit(main())
