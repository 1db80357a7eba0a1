"""
Accounts app - users, roles and authentication for EventConnect.

This app provides:
- User: email-login user with a "user" or "admin" role
- LoginActivity: login history used by the admin dashboard
- authz: ActorContext and role checks used by commands and views
"""
