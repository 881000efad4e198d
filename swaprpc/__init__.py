"""
swaprpc - JSON-RPC messaging between trading peers over an authenticated websocket
"""

__version__ = "0.1.0"
__logo__ = "⇄"

from swaprpc.messaging.client import Messenger

__all__ = ["Messenger", "__version__"]
