"""remoteplay_inviter

Client side of Remote Play Inviter. The client keeps a websocket open to the relay server and, when the server asks for it, uses the local Steam client to
create Remote Play Together invite links for friends on Discord.

The package is split the same way the work is split:
- relay: everything that talks to the relay server. Connecting, reading frames, reconnecting and making sense of rejected handshakes.
- steam: the seam to the local Steam client. The actual Steam automation lives behind an interface and is loaded at runtime.
- console: the terminal. Log lines scroll, the status line stays pinned at the bottom, even when the Steam poller writes from another thread.
"""
from .version import __version__

__all__ = ["__version__"]
