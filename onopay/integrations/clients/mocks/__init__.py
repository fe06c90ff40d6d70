"""
Mock integration clients.

These stand in for the Onopay gateway without calling any external API.
They are used when:
- merchant credentials for the sandbox are not available
- we want to run payment flows end-to-end in tests

Important:
- The mock gateway honours the SAME checksum contract as the real one.
- It is plugged in as an httpx transport, so the real client code runs unchanged.

Switching to real:
Set INTEGRATIONS_MODE=real (the default) and the client talks to the configured endpoints.
"""
