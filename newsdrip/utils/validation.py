# newsdrip/utils/validation.py
import re
import secrets
from typing import Optional
from newsdrip.errors import ValidationFailure

DISPOSABLE_EMAIL_DOMAINS = {
    '10minutemail.com', 'tempmail.org', 'guerrillamail.com',
    'mailinator.com', 'temp-mail.org', 'yopmail.com', 'getnada.com',
    'throwaway.email', 'mohmal.com', 'sharklasers.com', 'guerrillamailblock.com'
}

SPAM_EMAIL_PATTERNS = [
    re.compile(r'^[^@]*\d{4,}[^@]*@'),              # long digit runs in the local part
    re.compile(r'^[a-z]{1,3}\d+[a-z]{1,3}\d+@'),     # random letter/number mix
    re.compile(r'^(test|spam|fake|temp|noreply|admin)\d*@', re.IGNORECASE),
    re.compile(r'^[a-z]{1,2}\d+@'),
    re.compile(r'(.)\1{3,}'),
    re.compile(r'(bot|crawler|spider|scraper)@', re.IGNORECASE),
]

SUSPICIOUS_DOMAIN_PATTERNS = [
    re.compile(r'^.{1,3}\.'),
    re.compile(r'-{2,}'),
    re.compile(r'\.(tk|ml|ga|cf)$'),
    re.compile(r'\d{3,}'),
]

PHONE_PATTERN = re.compile(r'^\+?[1-9]\d{6,14}$')

# Form open time outside this window (ms) looks automated
MIN_SUBMISSION_MS = 3000
MAX_SUBMISSION_MS = 30 * 60 * 1000

TOKEN_BYTES = 32

def validate_email(email: str) -> bool:
    """Validate email format with strict RFC compliance"""
    if not email or len(email) > 254:
        return False

    pattern = r'^[a-zA-Z0-9.!#$%&\'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$'

    if not re.match(pattern, email):
        return False

    local, domain = email.rsplit('@', 1)
    if len(local) > 64 or len(domain) > 253:
        return False

    return True

def is_spam_email(email: str) -> bool:
    return any(pattern.search(email) for pattern in SPAM_EMAIL_PATTERNS)

def has_valid_domain(email: str) -> bool:
    parts = email.split('@')
    if len(parts) != 2:
        return False
    domain = parts[1].lower()
    return not any(pattern.search(domain) for pattern in SUSPICIOUS_DOMAIN_PATTERNS)

def is_disposable_email(email: str) -> bool:
    return email.rsplit('@', 1)[-1].lower() in DISPOSABLE_EMAIL_DOMAINS

def is_suspicious_timing(submission_time_ms: int) -> bool:
    return submission_time_ms < MIN_SUBMISSION_MS or submission_time_ms > MAX_SUBMISSION_MS

def normalize_phone(phone: str) -> str:
    """Strip formatting characters, keeping a leading +"""
    return re.sub(r'[\s().-]', '', phone)

def validate_phone(phone: str) -> bool:
    return bool(PHONE_PATTERN.match(normalize_phone(phone)))

def require_contact(contact_method: str, email: Optional[str], phone: Optional[str]):
    """The field matching the contact method must be present"""
    if contact_method == "email" and not email:
        raise ValidationFailure("An email address is required for email delivery")
    if contact_method == "sms":
        if not phone:
            raise ValidationFailure("A phone number is required for SMS delivery")
        if not validate_phone(phone):
            raise ValidationFailure("Please provide a valid phone number")

def check_subscriber_email(email: str):
    """Reject addresses that look fake, throwaway or automated"""
    if not validate_email(email) or is_spam_email(email):
        raise ValidationFailure("Please provide a valid email address.")
    if not has_valid_domain(email):
        raise ValidationFailure("Please check your email address and try again.")
    if is_disposable_email(email):
        raise ValidationFailure("Disposable email addresses are not allowed.")

def generate_subscriber_token() -> str:
    """Unguessable token for unsubscribe and preferences links"""
    return secrets.token_urlsafe(TOKEN_BYTES)
