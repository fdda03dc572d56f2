"""
Takeaway Bot
============

Voice dialog engine for takeaway ordering: a per-caller state machine that
fills order slots from transcribed utterances, prices and persists the order,
and answers status and cancellation requests.
"""
