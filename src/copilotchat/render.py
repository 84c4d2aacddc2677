"""Rendering of selection and file context into prompt text."""

from __future__ import annotations

from dataclasses import dataclass, field

FILES_HEADER = "Open files:\n"


@dataclass(frozen=True)
class EmbeddingItem:
    """One piece of file context supplied by the caller."""

    filename: str
    filetype: str
    prompt: str | None = None
    content: str | None = None
    embedding: list[float] | None = None


@dataclass(frozen=True)
class FileBlocks:
    header: str = FILES_HEADER
    files: tuple[str, ...] = field(default_factory=tuple)

    def render(self) -> str:
        if not self.files:
            return ""
        return self.header + "".join(self.files)


def _fenced(filename: str, filetype: str, content: str) -> str:
    return f"File: `{filename}`\n```{filetype}\n{content}\n```"


def render_selection(
    filename: str,
    filetype: str,
    start_row: int,
    end_row: int,
    selection: str,
) -> str:
    """Render the active selection, numbering lines when *start_row* is known."""
    if not selection:
        return ""

    content = selection
    if start_row > 0:
        lines = selection.split("\n")
        last_row = max(end_row, start_row + len(lines) - 1)
        width = len(str(last_row))
        content = "\n".join(
            f"{i + start_row:>{width}}: {line}" for i, line in enumerate(lines)
        )

    return f"Active selection: `{filename}`\n```{filetype}\n{content}\n```"


def render_file_blocks(items: list[EmbeddingItem]) -> FileBlocks:
    """Group items by filename (first-seen order) into one block per file."""
    groups: dict[str, list[EmbeddingItem]] = {}
    for item in items:
        groups.setdefault(item.filename, []).append(item)

    files = tuple(
        _fenced(
            filename,
            group[0].filetype,
            "\n".join((e.content or "").strip() for e in group),
        )
        + "\n"
        for filename, group in groups.items()
    )
    return FileBlocks(files=files)


def render_embedding_input(item: EmbeddingItem) -> str:
    out = ""
    if item.prompt:
        out = item.prompt + "\n"
    if item.content:
        out += _fenced(item.filename, item.filetype, item.content)
    return out
