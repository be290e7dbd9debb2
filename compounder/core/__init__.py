"""
Core Infrastructure

Host environment and shared plumbing:
- Token ledger and chain (clock, atomic transactions)
- Roles and role checks
- Error taxonomy
- Configuration management (compounder.core.config)
"""
