"""
Progress notification emails.

Messages are bilingual: French first, then Arabic (right-to-left). A finished
creation (progress 100) gets a "ready for pickup" variant of both the subject
and the body.
"""

import logging
import os
import smtplib
from email.message import EmailMessage
from typing import NamedTuple, Optional, Protocol

logger = logging.getLogger(__name__)

COMPLETE = 100


class Notifier(Protocol):
    def send(self, to: str, subject: str, html_body: str) -> None:
        ...


class ProgressMessage(NamedTuple):
    subject: str
    html: str


def shop_names():
    return os.getenv("SHOP_NAME", "Wahret Zmen"), os.getenv("SHOP_NAME_AR", "وهرة الزمن")


def compose_progress_message(customer_name: str, product_title: str, color_name: str,
                             progress: int) -> ProgressMessage:
    shop, shop_ar = shop_names()
    done = progress == COMPLETE

    if done:
        subject = f"{shop} - Votre création est prête à être récupérée !"
        fr_status = (f"<p><strong>Bonne nouvelle !</strong> Votre création est maintenant terminée "
                     f"et prête à être récupérée à notre boutique {shop}.</p>")
        ar_status = (f'<p dir="rtl"><strong>أخبار سارة!</strong> لقد تم إتمام منتجك بالكامل '
                     f"وهو جاهز للاستلام في متجر {shop_ar}.</p>")
    else:
        subject = f"{shop} - Suivi de votre création ({progress}%)"
        fr_status = ("<p>Nous vous tiendrons informé dès qu'elle sera entièrement finalisée "
                     "et prête à être récupérée.</p>")
        ar_status = '<p dir="rtl">سنعلمك فور اكتمالها وجاهزيتها للاستلام.</p>'

    html = f"""
<div>
  <p><strong>Cher {customer_name}</strong>,</p>
  <p>
    Nous avons le plaisir de vous informer que votre création artisanale <strong>{product_title}</strong>
    (Couleur : {color_name}) est actuellement <strong>{progress}% confectionnée</strong> par notre atelier {shop}.
  </p>
  {fr_status}
  <p>Merci pour votre confiance,<br/>L'équipe {shop}</p>
  <hr/>
  <p dir="rtl"><strong>عزيزي {customer_name}،</strong></p>
  <p dir="rtl">
    يسعدنا إعلامك بأن إبداعك التقليدي <strong>{product_title}</strong>
    (اللون: <strong>{color_name}</strong>)
    تتم حياكته حاليًا بنسبة <strong>{progress}٪</strong> في ورشة {shop_ar}.
  </p>
  {ar_status}
  <p dir="rtl">شكراً لثقتك بنا،<br/>فريق {shop_ar}</p>
</div>
"""
    return ProgressMessage(subject, html)


class SmtpNotifier:
    """Sends HTML mail through an SMTP-over-SSL relay (Gmail by default)."""

    def __init__(self, host: Optional[str] = None, port: Optional[int] = None,
                 user: Optional[str] = None, password: Optional[str] = None, timeout: float = 30):
        self.host = host or os.getenv("SMTP_HOST", "smtp.gmail.com")
        self.port = port or int(os.getenv("SMTP_PORT", 465))
        self.user = user or os.getenv("EMAIL_USER")
        self.password = password or os.getenv("EMAIL_PASS")
        self.timeout = timeout

    def send(self, to: str, subject: str, html_body: str) -> None:
        msg = EmailMessage()
        msg["From"] = self.user
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content("This message requires an HTML capable mail client.")
        msg.add_alternative(html_body, subtype="html")

        with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout) as server:
            if self.user and self.password:
                server.login(self.user, self.password)
            server.send_message(msg)
        logger.info(f"Notification sent to {to}: {subject}")
