"""Bloomberg API gateway for FX volatility reference data."""

import blpapi
from datetime import datetime
from typing import Dict, List, Optional
import logging

from ..utils.config_loader import ConfigLoader
from .market_data_gateway import MarketDataGateway

logger = logging.getLogger(__name__)

SECURITY_DATA = blpapi.Name("securityData")
SECURITY = blpapi.Name("security")
FIELD_DATA = blpapi.Name("fieldData")
SECURITY_ERROR = blpapi.Name("securityError")
RESPONSE_ERROR = blpapi.Name("responseError")


class BloombergGateway(MarketDataGateway):
    """Client for Bloomberg Desktop API reference data requests."""

    def __init__(self, host: str = None, port: int = None, timeout: int = None):
        config = ConfigLoader()
        self.host = host or config.bloomberg_host
        self.port = port or config.bloomberg_port
        self.timeout = timeout or config.bloomberg_timeout
        self.session: Optional[blpapi.Session] = None
        self.ref_data_service = None
        self._connected = False

    def connect(self) -> bool:
        """Establish connection to Bloomberg API."""
        if self._connected:
            logger.debug("Bloomberg: Already connected, reusing existing session")
            return True

        logger.info(f"Bloomberg: Attempting connection to {self.host}:{self.port}")

        try:
            session_options = blpapi.SessionOptions()
            session_options.setServerHost(self.host)
            session_options.setServerPort(self.port)

            self.session = blpapi.Session(session_options)

            logger.debug("Bloomberg: Starting session...")
            if not self.session.start():
                logger.error("Bloomberg: Failed to start session - is Bloomberg Terminal running?")
                self.session = None
                return False

            logger.debug("Bloomberg: Session started, opening //blp/refdata service...")
            if not self.session.openService("//blp/refdata"):
                logger.error("Bloomberg: Failed to open //blp/refdata service")
                self._stop_session()
                return False

            self.ref_data_service = self.session.getService("//blp/refdata")
            self._connected = True
            logger.info("Bloomberg: Successfully connected to Bloomberg API")
            return True

        except Exception as e:
            logger.error(f"Bloomberg: Connection error - {type(e).__name__}: {e}")
            self._stop_session()
            return False

    def _stop_session(self) -> None:
        session, self.session = self.session, None
        self.ref_data_service = None
        self._connected = False
        if session is None:
            return
        try:
            session.stop()
        except Exception as e:
            logger.warning(f"Bloomberg: Error stopping session - {type(e).__name__}: {e}")

    def disconnect(self) -> None:
        """Close Bloomberg session."""
        if self.session:
            logger.info("Bloomberg: Disconnecting from API...")
            self._stop_session()
            logger.info("Bloomberg: Disconnected successfully")

    def is_connected(self) -> bool:
        """Check if connected to Bloomberg."""
        return self._connected

    def fetch_reference_data(self, identifiers: List[str],
                             fields: List[str]) -> Dict[str, Dict[str, str]]:
        """
        Fetch fields for a batch of securities in a single ReferenceDataRequest.

        Partial and final responses are drained synchronously; values are kept
        as Bloomberg returns them as strings.
        """
        values: Dict[str, Dict[str, str]] = {}

        if not self._connected or self.session is None:
            logger.warning(f"Bloomberg: Not connected, skipping request for {len(identifiers)} securities")
            return values

        if not identifiers:
            return values

        request = self.ref_data_service.createRequest("ReferenceDataRequest")
        for identifier in identifiers:
            request.append("securities", identifier)
        for fld in fields:
            request.append("fields", fld)

        start_time = datetime.now()
        logger.info(f"Bloomberg: Requesting {fields} for {len(identifiers)} securities")

        try:
            self.session.sendRequest(request)

            event_count = 0
            while True:
                event = self.session.nextEvent(self.timeout)
                event_count += 1
                event_type = event.eventType()

                if event_type in (blpapi.Event.PARTIAL_RESPONSE, blpapi.Event.RESPONSE):
                    for msg in event:
                        self._collect_message(msg, values)

                if event_type == blpapi.Event.RESPONSE:
                    break
                if event_type == blpapi.Event.TIMEOUT:
                    logger.warning(f"Bloomberg: Timed out waiting for response after {event_count} events")
                    break

        except blpapi.exception.InvalidStateException as e:
            logger.error(f"Bloomberg: Invalid session state - {e}")
            self._connected = False
            return values
        except Exception as e:
            logger.error(f"Bloomberg: Request error - {type(e).__name__}: {e}")
            return values

        elapsed = (datetime.now() - start_time).total_seconds()
        logger.info(f"Bloomberg: Received data for {len(values)}/{len(identifiers)} securities "
                    f"in {elapsed:.2f}s ({event_count} events)")
        return values

    def _collect_message(self, msg, values: Dict[str, Dict[str, str]]) -> None:
        if msg.hasElement(RESPONSE_ERROR):
            logger.error(f"Bloomberg: Response error: {msg.getElement(RESPONSE_ERROR)}")
            return

        if not msg.hasElement(SECURITY_DATA):
            return

        security_data = msg.getElement(SECURITY_DATA)
        for i in range(security_data.numValues()):
            sec = security_data.getValueAsElement(i)
            security = sec.getElementAsString(SECURITY)

            if sec.hasElement(SECURITY_ERROR):
                logger.warning(f"Bloomberg: Security error for {security}: {sec.getElement(SECURITY_ERROR)}")
                continue

            if not sec.hasElement(FIELD_DATA):
                continue

            field_data = sec.getElement(FIELD_DATA)
            security_values = values.setdefault(security, {})
            for j in range(field_data.numElements()):
                element = field_data.getElement(j)
                security_values[str(element.name())] = element.getValueAsString()
