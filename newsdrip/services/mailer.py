# newsdrip/services/mailer.py - AWS SES sending shared by newsletters and subscriber notices
import asyncio
import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Dict, Any
from newsdrip.config import settings
from newsdrip.errors import AdapterFailure, PartialAcceptance
import logging

logger = logging.getLogger(__name__)

# SES errors that mean "fix the sender setup", not "this message is bad"
UNVERIFIED_SENDER_CODES = {"MailFromDomainNotVerifiedException", "MailFromDomainNotVerified"}

def build_ses_client(send_timeout: Optional[float] = None, region: Optional[str] = None):
    """SES client whose socket timeouts, with a single attempt, end inside the per-send deadline"""
    deadline = send_timeout or settings.delivery_timeout_seconds
    socket_timeout = max(deadline / 3, 0.1)
    config = Config(
        connect_timeout=socket_timeout,
        read_timeout=socket_timeout,
        retries={"total_max_attempts": 1, "mode": "standard"}
    )
    return boto3.client('sesv2', region_name=region or settings.aws_region, config=config)

class SesMailer:
    """Sends one email through SES on a thread pool.

    Raises ``PartialAcceptance`` when SES holds the message for sender
    verification and ``AdapterFailure`` for every other provider or
    transport error.
    """

    def __init__(
        self,
        ses_client=None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        reply_to: Optional[str] = None,
        configuration_set: Optional[str] = None,
        executor: Optional[ThreadPoolExecutor] = None,
        send_timeout: Optional[float] = None
    ):
        self.ses_client = ses_client or build_ses_client(send_timeout)
        self.from_email = from_email or settings.from_email
        self.from_name = from_name or settings.from_name
        self.reply_to = reply_to or settings.support_email
        self.configuration_set = configuration_set or settings.ses_configuration_set
        self.executor = executor or ThreadPoolExecutor(max_workers=5)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str
    ) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        # boto3 is blocking, keep it off the event loop
        return await loop.run_in_executor(
            self.executor,
            self._send_email_ses,
            to_email,
            subject,
            html_content,
            text_content
        )

    def _send_email_ses(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str
    ) -> Dict[str, Any]:
        """Send email using AWS SES"""
        email_params = {
            'FromEmailAddress': f"{self.from_name} <{self.from_email}>",
            'Destination': {
                'ToAddresses': [to_email]
            },
            'Content': {
                'Simple': {
                    'Subject': {
                        'Data': subject,
                        'Charset': 'UTF-8'
                    },
                    'Body': {
                        'Html': {
                            'Data': html_content,
                            'Charset': 'UTF-8'
                        },
                        'Text': {
                            'Data': text_content,
                            'Charset': 'UTF-8'
                        }
                    }
                }
            },
            'ReplyToAddresses': [self.reply_to]
        }
        if self.configuration_set:
            email_params['ConfigurationSetName'] = self.configuration_set

        try:
            response = self.ses_client.send_email(**email_params)
            return {
                'success': True,
                'message_id': response.get('MessageId'),
                'to_email': to_email
            }

        except ClientError as e:
            error_code = e.response['Error']['Code']
            error_message = e.response['Error']['Message']

            if error_code in UNVERIFIED_SENDER_CODES:
                raise PartialAcceptance("domain_unverified", error_message)
            elif error_code == 'MessageRejected' and 'not verified' in error_message.lower():
                # SES sandbox: recipient or sender identity still needs verification
                raise PartialAcceptance("domain_unverified", error_message)
            elif error_code in ('SendingPausedException', 'AccountSuspendedException'):
                raise AdapterFailure("sending_paused", error_message)
            else:
                raise AdapterFailure("provider_error", f"{error_code}: {error_message}")

        except BotoCoreError as e:
            raise AdapterFailure("transport_error", str(e))
