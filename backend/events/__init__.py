# events/__init__.py
"""
Events app - events, registrations and the registration ledger.

This app provides:
- Event / Registration: primary-store write models
- ledger: register, cancel, delete_event, is_registered
- commands: actor-facing operations returning CommandResult
- policies: the capacity gate and ownership checks

Usage:
    from events import ledger
    from events.errors import CapacityExceeded

    try:
        ledger.register(event.public_id, user.public_id)
    except CapacityExceeded:
        ...
"""
