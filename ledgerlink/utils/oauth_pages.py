"""HTML pages shown to the browser at the end of the OAuth callback."""

from html import escape

from ledgerlink.schemas import CallbackResult

_PAGE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{title}</title>
    {head_extra}
</head>
<body>
    <main class="oauth-callback oauth-callback--{status}">
        <h2>{heading}</h2>
        <p>{message}</p>
        {body_extra}
    </main>
</body>
</html>
"""


def render_callback_page(result: CallbackResult) -> str:
    """Success confirmation with a delayed redirect, or an error panel with a retry link."""
    target = escape(result.redirect_to, quote=True)
    if result.status == "success":
        return _PAGE.format(
            title="QuickBooks connected",
            head_extra=(
                f'<meta http-equiv="refresh" '
                f'content="{result.redirect_delay_seconds};url={target}">'
            ),
            status="success",
            heading="Successfully Connected!",
            message=(
                f"{escape(result.message)}. Your QuickBooks integration is now active. "
                "Redirecting you back to the app..."
            ),
            body_extra=f'<a href="{target}">Continue</a>',
        )

    return _PAGE.format(
        title="QuickBooks connection failed",
        head_extra="",
        status="error",
        heading="Connection Failed",
        message=(
            "There was an error connecting to QuickBooks. Please try again. "
            f"({escape(result.message)})"
        ),
        body_extra=f'<a class="button" href="{target}">Back to Setup</a>',
    )


__all__ = ["render_callback_page"]
