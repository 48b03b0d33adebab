"""
JSON-RPC 2.0 Client Module

Provides the client side of the Shelly Gen2+ RPC protocol:
- request/response: envelope building and raw-preserving reply parsing
- client: RPC client over any transport
- batch: several calls in one round trip
- notification: routing of unsolicited device messages
- auth: digest authentication data
- errors: error taxonomy

This module is independent of the underlying transport.
"""
