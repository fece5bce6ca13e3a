"""
Utility modules for the SafarSuraksha tourist safety service

This package contains helpers and external service bindings:
- location_utils: Strict coordinate and field validation
- blockchain: web3 ledger client for the tourist registry contract
- notifications: Webhook observer for panic alerts
"""
