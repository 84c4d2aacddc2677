"""copilotchat - a stateful GitHub Copilot chat client.

Usage::

    from copilotchat import Copilot

    copilot = Copilot()
    result = copilot.ask("Explain this function", selection=code,
                         filename="app.py", filetype="python",
                         on_progress=lambda delta: print(delta, end=""))
    copilot.save("session", "~/.copilotchat/history")
"""

__version__ = "0.1.0"

from copilotchat.client import AskResult, Copilot  # noqa: E402
from copilotchat.errors import (  # noqa: E402
    AuthenticationMissing,
    AuthenticationRejected,
    CopilotError,
    EmptyResult,
    StreamParseFailure,
    StreamProtocolError,
    TransportFailure,
)
from copilotchat.render import EmbeddingItem  # noqa: E402

__all__ = [
    "AskResult",
    "AuthenticationMissing",
    "AuthenticationRejected",
    "Copilot",
    "CopilotError",
    "EmbeddingItem",
    "EmptyResult",
    "StreamParseFailure",
    "StreamProtocolError",
    "TransportFailure",
    "__version__",
]
