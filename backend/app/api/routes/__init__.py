# API Routes Module
from app.api.routes import (
    chats,
    conversations,
    paypal,
    subscriptions,
    webhooks,
)

__all__ = [
    "chats",
    "conversations",
    "paypal",
    "subscriptions",
    "webhooks",
]
