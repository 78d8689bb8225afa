import base64
import io

import qrcode
from qrcode.constants import ERROR_CORRECT_L


def _make_qr(text: str, box_size: int = 10, border: int = 4) -> qrcode.QRCode:
    qr = qrcode.QRCode(
        version=None,
        error_correction=ERROR_CORRECT_L,
        box_size=box_size,
        border=border,
    )
    qr.add_data(text)
    qr.make(fit=True)
    return qr


class QrBarcodeEncoder:
    """
    Renders signed tokens as QR code PNG images.

    Scanners that only read PDF417 need a different encoder, any object with
    `encode(text) -> bytes` can be passed to `TicketDisplay`.
    """

    def __init__(self, box_size: int = 10, border: int = 4) -> None:
        self.box_size = box_size
        self.border = border

    def encode(self, text: str) -> bytes:
        qr = _make_qr(text, box_size=self.box_size, border=self.border)
        img = qr.make_image(fill_color="black", back_color="white")

        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        return buffer.getvalue()


def to_data_uri(png: bytes) -> str:
    img_base64 = base64.b64encode(png).decode("utf-8")
    return f"data:image/png;base64,{img_base64}"


def render_ascii(text: str, invert: bool = True) -> str:
    qr = _make_qr(text, box_size=1, border=2)
    out = io.StringIO()
    qr.print_ascii(out=out, invert=invert)
    return out.getvalue()
