"""Domain layer for the soulbound ledger.

Contains the ledger state machine, its rules, errors and notifications.
This layer has no dependencies on infrastructure concerns.
"""
