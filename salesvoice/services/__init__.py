"""
Services module for external API integrations.

Key components:
- twilio_client: ``TwilioCallClient``, which places outbound calls through the
  Twilio Calls REST API using ``httpx``.

Usage examples:
```python
from salesvoice.services.twilio_client import TwilioCallClient

client = TwilioCallClient()
call = await client.create_call(
    account_sid="AC...",
    auth_token="...",
    to="+15551230000",
    from_="+15559870000",
    callback_url="https://example.com/incoming-call",
)
```
"""
