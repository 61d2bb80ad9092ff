# policy_approval/workflow/notifications.py
"""
Workflow notifications.

Events are written to the structured log; there is no delivery channel.
"""

from ..logging import get_logger

logger = get_logger("policy_approval.notifications")


def notify(event_type: str, message: str, **data) -> None:
    """
    Emit a workflow event.

    Fraud alerts and rejections log at WARNING, everything else at INFO.
    """
    if event_type in ("fraud_alert", "policy_rejected"):
        logger.warning(message, event=event_type, **data)
    else:
        logger.info(message, event=event_type, **data)
