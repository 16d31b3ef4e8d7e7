"""PagerDuty identity-graph connector.

Pages users, teams, team members and schedules out of the PagerDuty REST
API and projects them into resources, entitlements and grants. Role grants
are computed by a resumable multi-phase pass driven by continuation tokens.
"""
