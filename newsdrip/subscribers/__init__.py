from .service import SubscriberService

__all__ = [
    'SubscriberService',
]
