"""
Housekeeping backend: room assignment state machine and work queue.
"""
