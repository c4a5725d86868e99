from .service import NewsletterService

__all__ = [
    'NewsletterService',
]
