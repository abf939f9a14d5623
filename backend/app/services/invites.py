# backend/app/services/invites.py
"""
Invite codes and invite QR codes.

The QR code encodes the join link ({APP_BASE_URL}/join/{code}) so a
family member can scan it from another phone.
"""
import base64
import io
import secrets
import string

import qrcode

from backend.app.core.config import settings

# No 0/O/1/I so codes survive being read aloud
INVITE_ALPHABET = "".join(c for c in string.ascii_uppercase + string.digits if c not in "0O1I")


def generate_invite_code(length: int = None) -> str:
    length = length or settings.INVITE_CODE_LENGTH
    return "".join(secrets.choice(INVITE_ALPHABET) for _ in range(length))


def invite_url(code: str) -> str:
    return f"{settings.APP_BASE_URL.rstrip('/')}/join/{code}"


def generate_qr_code_base64(data: str) -> str:
    """
    Render `data` as a Base64-encoded PNG QR code.

    Frontend can display this directly using: <img src="data:image/png;base64,{result}">
    """
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=4,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    buffer.seek(0)

    return base64.b64encode(buffer.read()).decode("utf-8")
