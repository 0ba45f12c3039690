from .email import ConsoleEmailSender, EmailSender, SmtpEmailSender, build_email_sender

__all__ = [
    "ConsoleEmailSender",
    "EmailSender",
    "SmtpEmailSender",
    "build_email_sender",
]
