"""relay directory

Everything that talks to the relay server.

The supervisor resolves the relay url once and then keeps a connection open for the life of the process. Each connection attempt is a ConnectionSession: it connects with a
timeout, answers pings, decodes text frames and hands them to a MessageHandler one at a time. When an attempt ends (server closed the socket, timeout, bad data, rejected
handshake), the supervisor asks the ConnectionErrorClassifier what to tell the operator, waits for the BackoffPolicy delay and starts over.

Frames are read with aiohttp with automatic ping replies turned off. A ping is the relay's heartbeat, so the session answers it itself and treats it as proof the link is healthy.
"""
