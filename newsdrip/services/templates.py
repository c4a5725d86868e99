# newsdrip/services/templates.py - Newsletter, notice and page bodies
import html
import re
from typing import List, Optional, Tuple
from newsdrip.models.domain import Newsletter, Subscriber

SMS_MAX_LENGTH = 320
NUMBERED_ITEM = re.compile(r"^\d+\.\s+")

def build_subscriber_links(subscriber: Subscriber, base_url: str, frontend_url: str) -> Tuple[str, str]:
    """Return (unsubscribe_url, preferences_url) for a subscriber.

    Unsubscribe is a one-click GET served by this app; preferences open the
    frontend page, which edits them through ``/api/preferences/{token}``.
    """
    unsubscribe_url = f"{base_url.rstrip('/')}/api/unsubscribe/{subscriber.unsubscribe_token or ''}"
    preferences_url = f"{frontend_url.rstrip('/')}/preferences?token={subscriber.preferences_token or ''}"
    return unsubscribe_url, preferences_url

def build_tracking_url(delivery_id: int, base_url: str) -> str:
    return f"{base_url.rstrip('/')}/api/deliveries/{delivery_id}/open.gif"

def format_content_html(content: str) -> str:
    """Escape plain text content and turn blank-line separated blocks into paragraphs"""
    blocks = []
    for paragraph in html.escape(content).split("\n\n"):
        paragraph = paragraph.strip()
        if not paragraph:
            continue

        lines = [line.strip() for line in paragraph.split("\n")]
        if all(line.startswith(("- ", "• ")) for line in lines):
            items = "".join(f"<li>{line[2:].strip()}</li>" for line in lines)
            blocks.append(f"<ul>{items}</ul>")
        elif all(NUMBERED_ITEM.match(line) for line in lines):
            items = "".join(f"<li>{NUMBERED_ITEM.sub('', line)}</li>" for line in lines)
            blocks.append(f"<ol>{items}</ol>")
        else:
            blocks.append(f"<p>{'<br>'.join(lines)}</p>")
    return "".join(blocks)

def render_newsletter_html(
    newsletter: Newsletter,
    category_names: List[str],
    unsubscribe_url: str,
    preferences_url: str,
    company_name: str,
    tracking_url: Optional[str] = None
) -> str:
    title = html.escape(newsletter.title)
    categories = html.escape(", ".join(category_names))
    body = format_content_html(newsletter.content)
    pixel = (
        f'<img src="{html.escape(tracking_url)}" width="1" height="1" alt="">'
        if tracking_url else ""
    )

    return f"""
        <!DOCTYPE html>
        <html lang="en">
        <head>
            <meta charset="UTF-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
            <title>{title}</title>
            <style>
                body {{
                    font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif;
                    line-height: 1.6;
                    color: #333;
                    max-width: 600px;
                    margin: 0 auto;
                    padding: 20px;
                }}
                .categories {{
                    color: #6b7280;
                    font-size: 13px;
                }}
                .footer {{
                    text-align: center;
                    margin-top: 40px;
                    padding-top: 20px;
                    border-top: 1px solid #e5e7eb;
                    color: #6b7280;
                    font-size: 12px;
                }}
            </style>
        </head>
        <body>
            <h1>{title}</h1>
            <p class="categories">{categories}</p>
            {body}
            <div class="footer">
                <p>{html.escape(company_name)}</p>
                <p>
                    <a href="{html.escape(preferences_url)}">Manage preferences</a> |
                    <a href="{html.escape(unsubscribe_url)}">Unsubscribe</a>
                </p>
            </div>
            {pixel}
        </body>
        </html>
        """

def render_newsletter_text(
    newsletter: Newsletter,
    category_names: List[str],
    unsubscribe_url: str,
    preferences_url: str,
    company_name: str
) -> str:
    return (
        f"{newsletter.title}\n"
        f"{'=' * len(newsletter.title)}\n\n"
        f"Categories: {', '.join(category_names)}\n\n"
        f"{newsletter.content.strip()}\n\n"
        f"--\n"
        f"{company_name}\n"
        f"Manage preferences: {preferences_url}\n"
        f"Unsubscribe: {unsubscribe_url}\n"
    )

def render_sms_body(newsletter: Newsletter, unsubscribe_url: str) -> str:
    """Short text message: subject, start of the content, opt-out link"""
    footer = f"\nStop: {unsubscribe_url}"
    headline = newsletter.effective_subject
    room = SMS_MAX_LENGTH - len(footer) - len(headline) - 2
    summary = " ".join(newsletter.content.split())
    if room <= 0:
        summary = ""
    elif len(summary) > room:
        summary = summary[:max(room - 3, 0)].rstrip() + "..."
    return f"{headline}\n{summary}{footer}" if summary else f"{headline}{footer}"

def _render_notice_html(
    heading: str,
    intro: str,
    details: List[Tuple[str, str]],
    unsubscribe_url: str,
    preferences_url: str,
    company_name: str
) -> str:
    rows = "".join(
        f"<li><strong>{html.escape(label)}:</strong> {html.escape(value)}</li>"
        for label, value in details
    )
    return f"""
        <!DOCTYPE html>
        <html lang="en">
        <head>
            <meta charset="UTF-8">
            <title>{html.escape(heading)}</title>
        </head>
        <body style="font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1>{html.escape(heading)}</h1>
            <p>{html.escape(intro)}</p>
            <ul>{rows}</ul>
            <p>
                <a href="{html.escape(preferences_url)}">Manage your preferences</a>
            </p>
            <div style="margin-top: 40px; color: #6b7280; font-size: 12px; text-align: center;">
                <p>{html.escape(company_name)}</p>
                <p><a href="{html.escape(unsubscribe_url)}">Unsubscribe</a></p>
            </div>
        </body>
        </html>
        """

def _render_notice_text(
    heading: str,
    intro: str,
    details: List[Tuple[str, str]],
    unsubscribe_url: str,
    preferences_url: str,
    company_name: str
) -> str:
    lines = "".join(f"- {label}: {value}\n" for label, value in details)
    return (
        f"{heading}\n\n"
        f"{intro}\n\n"
        f"{lines}\n"
        f"--\n"
        f"{company_name}\n"
        f"Manage preferences: {preferences_url}\n"
        f"Unsubscribe: {unsubscribe_url}\n"
    )

def render_welcome_email(
    subscriber: Subscriber,
    category_names: List[str],
    unsubscribe_url: str,
    preferences_url: str,
    company_name: str
) -> Tuple[str, str, str]:
    """Return (subject, html, text) of the message sent after subscribing"""
    subject = f"Welcome to {company_name}!"
    intro = (
        "Thanks for subscribing. You'll receive newsletters for the categories "
        "below, and you can change them at any time."
    )
    details = [
        ("Email", subscriber.email or ""),
        ("Frequency", subscriber.frequency),
        ("Categories", ", ".join(category_names)),
    ]
    args = (subject, intro, details, unsubscribe_url, preferences_url, company_name)
    return subject, _render_notice_html(*args), _render_notice_text(*args)

def render_preferences_updated_email(
    subscriber: Subscriber,
    category_names: List[str],
    unsubscribe_url: str,
    preferences_url: str,
    company_name: str
) -> Tuple[str, str, str]:
    """Return (subject, html, text) confirming a preferences change"""
    subject = "Your newsletter preferences have been updated"
    intro = "Your subscription now looks like this:"
    details = [
        ("Contact method", subscriber.contact_method),
        ("Frequency", subscriber.frequency),
        ("Categories", ", ".join(category_names)),
    ]
    args = (subject, intro, details, unsubscribe_url, preferences_url, company_name)
    return subject, _render_notice_html(*args), _render_notice_text(*args)

def render_unsubscribe_page(contact: Optional[str]) -> str:
    """Confirmation page for the one-click unsubscribe link; ``None`` means the token was unknown"""
    if contact is None:
        heading = "Subscriber Not Found"
        message = (
            "We couldn't find a subscription associated with this link. "
            "You may have already unsubscribed, or the link may be invalid."
        )
    else:
        heading = "Successfully Unsubscribed"
        message = (
            f"{html.escape(contact)} has been unsubscribed and will no longer "
            "receive newsletters from us."
        )
    return f"""
        <html>
            <head><title>{heading}</title></head>
            <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 50px auto; padding: 20px; text-align: center;">
                <h2>{heading}</h2>
                <p>{message}</p>
            </body>
        </html>
        """
