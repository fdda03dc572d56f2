"""
Routes Package for Takeaway Bot
===============================

- voice.py: Utterance, timeout, wake and hang-up endpoints
- orders.py: Order status lookup and cancellation
"""
