"""
ACCA Client Core

Session-authenticated API client and bank reconciliation core of the
ACCA personal-finance app. The UI shell lives elsewhere; every heavy
computation (CSV parsing, categorisation, reports) happens on the server.

DESIGN PRINCIPLES:
1. Show the authenticated shell fast, verify with the server after
2. Only the server saying 401/403 ends a session
3. Validate locally before any write
4. Every session and reconciliation step is auditable
"""

__version__ = "1.0.0"
__author__ = "ACCA Team"
