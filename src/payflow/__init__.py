"""
PayFlow - Payment Processing Demo Service

A small payment service used to exercise root-cause-analysis tooling:
- Accepts simulated payment transactions
- Runs each transaction through fixed fraud-detection rules
- Persists transactions and fraud alerts
- Exposes metrics, structured logs and health/readiness probes
"""

__version__ = "1.0.0"
