"""
Registrations module.

- One registration per (user, event), enforced by a unique constraint
- Registrations are immutable and never deleted
- Each successful registration notifies the student
"""
