"""
Backend Bubbles — related-account analysis for Solana wallets.

Given a wallet address, finds the accounts it has recently transacted with
and how much value (SOL equivalent) moved between them. Built to stay under
aggressive RPC rate limits: batched retrieval with backoff, plus a bounded
TTL cache in front of the whole pipeline.
"""

__version__ = "0.1.0"
