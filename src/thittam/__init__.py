"""
Thittam1Hub - Account onboarding service.

Hosts the two-role (attendee / organizer) onboarding wizard:
- onboarding: step state machine, progress persistence, submission
- thittam: settings, Supabase access, role cache, web app and CLI
"""

__version__ = "1.0.0"
