from .channels import ChannelAdapter, EmailAdapter, SmsAdapter
from .matcher import CategoryMatcher
from .orchestrator import FanoutOrchestrator

__all__ = [
    'ChannelAdapter',
    'EmailAdapter',
    'SmsAdapter',
    'CategoryMatcher',
    'FanoutOrchestrator',
]
