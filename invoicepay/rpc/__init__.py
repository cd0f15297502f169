"""
invoicepay RPC transport

Blocking Solana JSON-RPC client. No retries, no pipelining.
"""

from invoicepay.rpc.client import RpcClient

__all__ = ["RpcClient"]
