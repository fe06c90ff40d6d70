"""
Real HTTP integration clients.

These clients communicate with the Onopay gateway over HTTP:
- payment initiation (browser redirect form fields)
- UPI collect and mandate registration
- status checks and refunds

Important:
- Every outbound field set is signed with the request salt
- Every reply is verified with the response salt before any field is read

Switching:
The selection of mock vs real transport happens in onopay/api/endpoints/payments.py only.
"""
