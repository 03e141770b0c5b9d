"""
Twilio WhatsApp transport with retry logic.
"""

import asyncio
import logging
from typing import Optional

from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.rest import Client
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from notifier.domain.messages import SendResult
from notifier.utils.phone import to_whatsapp_address

logger = logging.getLogger(__name__)


class TwilioWhatsAppTransport:
    """Sends rendered messages through the Twilio WhatsApp API."""
    
    def __init__(self, account_sid: str, auth_token: str, from_number: str):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self._client: Optional[Client] = None
    
    @property
    def client(self) -> Client:
        # Built on first send so a missing credential fails the send, not startup
        if self._client is None:
            self._client = Client(self.account_sid, self.auth_token)
        return self._client
    
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception_type(TwilioRestException),
        reraise=True
    )
    def _send_message_sync(self, message: str, to_number: str):
        """
        Synchronous Twilio message send with retry logic.
        
        Args:
            message: Text message to send
            to_number: Recipient's WhatsApp address
        
        Returns:
            Twilio message object
        """
        return self.client.messages.create(
            body=message,
            from_=self.from_number,
            to=to_number
        )
    
    async def send(self, recipient: str, content: str) -> SendResult:
        """
        Send a WhatsApp text message.
        
        Args:
            recipient: Normalised recipient digits
            content: Rendered message body
        
        Returns:
            SendResult with success flag and error text
        """
        try:
            # Blocking client and retry backoff run off the event loop
            msg = await asyncio.to_thread(
                self._send_message_sync,
                message=content,
                to_number=to_whatsapp_address(recipient)
            )
            logger.info(f"WhatsApp message sent successfully. SID: {msg.sid}")
            return SendResult(success=True)
        except TwilioException as e:
            logger.error(f"Failed to send WhatsApp message after retries: {e}")
            return SendResult(success=False, error=str(e))
