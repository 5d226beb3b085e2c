"""Core domain package for hookrelay.

Core contains rule matching, configuration shapes and the message fan-out
without any websocket or HTTP-specific code, keeping the routing logic portable.
"""
