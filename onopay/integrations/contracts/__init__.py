"""
Contracts (data models).

This folder defines the request/response shapes exchanged with the Onopay gateway:
- outbound request field sets (payment initiation, UPI collect, mandate, refund, status)
- the signed, read-only request handed to the transport or the redirect form
- payment outcomes and the per-payment lifecycle states

Both the real HTTP client and the mock gateway use these contracts.
"""
