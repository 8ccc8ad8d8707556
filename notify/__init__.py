"""notify/ -- Outbound notifications.

Layer rule: notify/ imports from core/ and the domain models only. Nothing in
notify/ raises into a caller; delivery failures are logged and dropped.
"""
