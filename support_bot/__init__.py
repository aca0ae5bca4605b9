"""
Support Bot: chat-to-case support assistant for e-commerce orders.
"""
