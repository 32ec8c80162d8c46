from flask_mail import Message
from bmsstore.extensions import mail


def send_email(subject, recipients, body, sender=None):
    """
    Send a UTF-8 plain-text e-mail.
    Flask-Mail builds the MIME parts and charset itself.
    """
    if isinstance(recipients, str):
        recipients = [recipients]

    msg = Message(
        subject=subject or "",
        recipients=list(recipients or []),
        body=body or "",
        sender=sender,
    )
    msg.charset = "utf-8"

    mail.send(msg)
    return msg
