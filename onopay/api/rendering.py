"""
Redirect form rendering.

Turns a finished SignedRequest into a self-submitting HTML form. This module
only reads the signed fields; it never builds or alters them.
"""

import html

from onopay.integrations.contracts.interfaces import SignedRequest

_PAGE = """<!DOCTYPE html>
<html lang="en-IN">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Redirecting to Onopay Payment Gateway</title>
    <style>
        body {{ font-family: Arial, sans-serif; text-align: center; padding: 50px; }}
        .loader {{ border: 5px solid #f3f3f3; border-top: 5px solid #3498db; border-radius: 50%;
                  width: 50px; height: 50px; animation: spin 1s linear infinite; margin: 20px auto; }}
        @keyframes spin {{ 0% {{ transform: rotate(0deg); }} 100% {{ transform: rotate(360deg); }} }}
    </style>
</head>
<body>
    <div class="loader"></div>
    <h2>Redirecting to Secure Payment Gateway</h2>
    <p>Please wait while we redirect you to Onopay for secure payment processing.</p>
    <p>Do not refresh or press the back button.</p>
    <form action="{action}" method="POST" name="onopayPaymentForm">
{inputs}
    </form>
    <script>
        document.addEventListener("DOMContentLoaded", function() {{
            setTimeout(function() {{ document.onopayPaymentForm.submit(); }}, 1000);
        }});
    </script>
</body>
</html>
"""


def render_redirect_form(signed: SignedRequest) -> str:
    inputs = "\n".join(
        f'        <input type="hidden" name="{html.escape(key)}" value="{html.escape(value)}">'
        for key, value in signed.fields.items()
    )
    return _PAGE.format(action=html.escape(signed.url), inputs=inputs)
