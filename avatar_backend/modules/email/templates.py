"""HTML bodies for the transactional emails sent after signup."""
from html import escape
from typing import Optional

_STYLE = """
body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; }
.container { max-width: 600px; margin: 0 auto; padding: 20px; }
.header { background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; padding: 30px; border-radius: 10px 10px 0 0; text-align: center; }
.content { background: #f8f9fa; padding: 30px; border-radius: 0 0 10px 10px; }
.info-box { background: white; padding: 20px; border-radius: 8px; margin: 15px 0; border-left: 4px solid #667eea; }
.label { font-weight: 600; color: #666; font-size: 12px; text-transform: uppercase; margin-bottom: 5px; }
.cta-button { display: inline-block; background: #667eea; color: white; padding: 15px 30px; border-radius: 8px; text-decoration: none; font-weight: 600; margin: 25px 0; }
.footer { text-align: center; margin-top: 20px; color: #888; font-size: 12px; }
"""


def _page(header: str, body: str) -> str:
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<style>{_STYLE}</style></head><body><div class=\"container\">"
        f"<div class=\"header\">{header}</div>"
        f"<div class=\"content\">{body}</div>"
        "</div></body></html>"
    )


def _info_box(label: str, value: str) -> str:
    return (
        f"<div class=\"info-box\"><div class=\"label\">{escape(label)}</div>"
        f"<div class=\"value\">{escape(value)}</div></div>"
    )


def new_registration_html(full_name: str, email: str, registered_at: str, referred_by: Optional[str]) -> str:
    boxes = [
        _info_box("Imię i nazwisko", full_name),
        _info_box("Adres email", email),
        _info_box("Data rejestracji", registered_at),
    ]
    if referred_by:
        boxes.append(_info_box("Kod polecenia", referred_by))
    boxes.append("<div class=\"footer\"><p>Ten email został wysłany automatycznie przez system AVATAR.</p></div>")
    return _page(
        "<h1 style=\"margin: 0;\">Nowa rejestracja!</h1>"
        "<p style=\"margin: 10px 0 0 0;\">Ktoś właśnie dołączył do AVATAR</p>",
        "".join(boxes),
    )


def welcome_html(first_name: str, dashboard_url: str) -> str:
    body = (
        f"<p>Cześć <strong>{escape(first_name)}</strong>!<br><br>"
        "Dziękujemy za rejestrację w systemie AVATAR.</p>"
        "<ul>"
        "<li>Wywiad żywieniowy: wypełnij szczegółowy wywiad, abyśmy mogli poznać Twoje potrzeby</li>"
        "<li>Diagnostyka: prześlij wyniki badań lub zamów pakiet diagnostyczny</li>"
        "<li>Spersonalizowane zalecenia dietetyczne i suplementacyjne</li>"
        "</ul>"
        f"<div style=\"text-align: center;\"><a href=\"{escape(dashboard_url)}\" class=\"cta-button\">Przejdź do panelu</a></div>"
        "<div class=\"footer\"><p>Pozdrawiamy,<br><strong>Zespół AVATAR</strong></p></div>"
    )
    return _page("<h1 style=\"margin: 0;\">Witamy w AVATAR!</h1>", body)
