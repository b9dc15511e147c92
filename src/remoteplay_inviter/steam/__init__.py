"""steam directory

The seam to the local Steam client. SteamController is the interface the rest of the client codes against, the implementation is loaded at runtime.
InviteMessageHandler is the default relay MessageHandler: it answers relay commands with Steam data and invite links.
"""
