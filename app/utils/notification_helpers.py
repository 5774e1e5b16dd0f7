from app.constants.notification_codes import NotificationCode
from app.constants.notification_templates import NOTIFICATION_TEMPLATES


def render_notification(code: NotificationCode, **context) -> str:
    template = NOTIFICATION_TEMPLATES.get(code)
    if not template:
        raise ValueError(f"No notification template for code {code}")

    try:
        return template.format(**context)
    except KeyError as e:
        raise ValueError(
            f"Missing notification context key: {e.args[0]} for {code}"
        )
