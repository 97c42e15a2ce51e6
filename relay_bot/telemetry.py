"""
Telemetry facade for the Teams relay bot.

Wraps OpenTelemetry spans and span events behind a small interface:
- start_operation(name) -> OperationTimer (set_context / stop / end)
- track_custom_event(name, properties)
- track_exception(error, properties)
- track_message(message, properties)

A TelemetryService instance is passed into every component that reports
telemetry. Failures inside telemetry are logged and never reach the caller.
"""
import logging
from typing import Any, Dict, Optional

from opentelemetry import context as otel_context
from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode

logger = logging.getLogger(__name__)

_azure_monitor_configured = False


def _to_attributes(properties: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Coerce arbitrary properties into OpenTelemetry attribute values."""
    attributes = {}
    for key, value in (properties or {}).items():
        if value is None:
            continue
        if isinstance(value, (str, bool, int, float)):
            attributes[key] = value
        else:
            attributes[key] = str(value)
    return attributes


class OperationTimer:
    """Span-backed timer for a single bot operation."""

    def __init__(self, name: str, span=None, context_token=None):
        self.name = name
        self._span = span
        self._context_token = context_token
        self.user_id = "unknown"
        self.conversation_id = "unknown"
        self._finished = False

    def set_context(self, user_id: Optional[str], conversation_id: Optional[str]) -> "OperationTimer":
        self.user_id = user_id or "unknown"
        self.conversation_id = conversation_id or "unknown"
        if self._span is not None:
            try:
                self._span.set_attributes({
                    "user_id": self.user_id,
                    "conversation_id": self.conversation_id
                })
            except Exception as e:
                logger.error(f"Failed to set context on operation {self.name}: {e}")
        return self

    def stop(self, success: bool, error_message: Optional[str] = None):
        if self._finished:
            return
        self._finished = True

        if success:
            logger.info(
                f"Operation completed: {self.name} "
                f"(user={self.user_id}, conversation={self.conversation_id})"
            )
        else:
            logger.warning(
                f"Operation failed: {self.name} "
                f"(user={self.user_id}, conversation={self.conversation_id}): "
                f"{error_message or 'Operation failed'}"
            )

        if self._span is None:
            return
        try:
            if success:
                self._span.set_status(Status(StatusCode.OK))
            else:
                self._span.set_status(Status(StatusCode.ERROR, error_message or "Operation failed"))
            self._span.end()
        except Exception as e:
            logger.error(f"Failed to stop operation {self.name}: {e}")
        finally:
            self._restore_context()

    def _restore_context(self):
        if self._context_token is None:
            return
        token, self._context_token = self._context_token, None
        try:
            otel_context.detach(token)
        except Exception as e:
            logger.error(f"Failed to restore context after operation {self.name}: {e}")

    def end(self):
        """Finish the operation as successful."""
        self.stop(True)

    @property
    def span(self):
        return self._span

    @property
    def finished(self) -> bool:
        return self._finished


class _NoOpTimer(OperationTimer):
    """Timer handed out when telemetry is disabled."""

    def set_context(self, user_id, conversation_id) -> "OperationTimer":
        return self

    def stop(self, success: bool, error_message: Optional[str] = None):
        self._finished = True


class TelemetryService:
    """
    Telemetry handle injected into the bot, the agent client and the routes.

    Args:
        service_name: Tracer name and cloud role for exported telemetry
        enabled: When False every call is a no-op
    """

    def __init__(self, service_name: str = "teams-relay-bot", enabled: bool = True):
        self.service_name = service_name
        self.enabled = enabled
        self._tracer = trace.get_tracer(service_name)

    def start_operation(
        self,
        operation_name: str,
        properties: Optional[Dict[str, Any]] = None
    ) -> OperationTimer:
        if not self.enabled:
            return _NoOpTimer(operation_name)

        try:
            attributes = _to_attributes(properties)
            attributes["operation_type"] = "bot_operation"
            span = self._tracer.start_span(
                operation_name,
                kind=SpanKind.INTERNAL,
                attributes=attributes
            )
            # Current until stop() so events and outgoing trace headers belong to it
            token = otel_context.attach(trace.set_span_in_context(span))
        except Exception as e:
            logger.error(f"Failed to start operation {operation_name}: {e}")
            return _NoOpTimer(operation_name)

        logger.debug(f"Operation started: {operation_name}")
        return OperationTimer(operation_name, span, token)

    def track_custom_event(self, event_name: str, properties: Optional[Dict[str, Any]] = None):
        if not self.enabled:
            return
        try:
            logger.info(f"Telemetry Event: {event_name}", extra={"properties": properties or {}})
            trace.get_current_span().add_event(event_name, _to_attributes(properties))
        except Exception as e:
            logger.error(f"Failed to track event {event_name}: {e}")

    def track_message(self, message: str, properties: Optional[Dict[str, Any]] = None):
        if not self.enabled:
            return
        try:
            logger.info(f"Bot Message: {message}", extra={"properties": properties or {}})
        except Exception as e:
            logger.error(f"Failed to track message: {e}")

    def track_exception(self, error: BaseException, properties: Optional[Dict[str, Any]] = None):
        if not self.enabled:
            return
        try:
            logger.error(
                f"Exception tracked: {error}",
                exc_info=(type(error), error, error.__traceback__),
                extra={"properties": properties or {}}
            )
            trace.get_current_span().record_exception(error, attributes=_to_attributes(properties))
        except Exception as e:
            logger.error(f"Failed to track exception: {e}")

    def flush(self):
        """Flush pending spans when the SDK tracer provider supports it."""
        provider = trace.get_tracer_provider()
        force_flush = getattr(provider, "force_flush", None)
        if force_flush is None:
            return
        try:
            force_flush()
        except Exception as e:
            logger.error(f"Failed to flush telemetry: {e}")


def configure_telemetry(settings) -> TelemetryService:
    """
    Create the telemetry handle and enable Azure Monitor export when a
    connection string is configured.

    Args:
        settings: BotSettings instance

    Returns:
        TelemetryService for the application
    """
    global _azure_monitor_configured

    telemetry = TelemetryService(settings.service_name, enabled=settings.telemetry_enabled)

    if not settings.telemetry_enabled:
        logger.info("Telemetry disabled by configuration")
        return telemetry

    if settings.applicationinsights_connection_string and not _azure_monitor_configured:
        try:
            from azure.monitor.opentelemetry import configure_azure_monitor

            configure_azure_monitor(
                connection_string=settings.applicationinsights_connection_string
            )
            _azure_monitor_configured = True
            logger.info(f"Azure Monitor OpenTelemetry enabled for {settings.service_name}")
        except Exception as e:
            logger.error(f"Failed to initialize Azure Monitor: {e}")
    elif not settings.applicationinsights_connection_string:
        logger.warning("Application Insights not configured - spans stay in-process")

    return telemetry


__all__ = ["TelemetryService", "OperationTimer", "configure_telemetry"]
