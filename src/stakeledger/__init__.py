"""
stakeledger: staking ledger and accounting engine for a liquid-staking protocol.
"""

__version__ = "0.1.0"
