"""Adapters binding the core to the websocket stream and HTTP webhooks."""
