"""
PharmaChain Dashboard

Simulated pharmaceutical supply chain traceability: batches, custody
events, cold-chain telemetry, tamper alerts, FDA submissions and quality
checks.
"""

__version__ = "1.0.0"
