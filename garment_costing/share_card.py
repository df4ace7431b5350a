"""
Share card renderer — a fixed 1080x1350 image of one costing for chat/email.

Layout (top to bottom): app title, calc version + date, cover-fit photo,
style name (max 2 lines), composition / gauge / weight line, final FOB
highlight, disclaimer. Rendered with Pillow; output PNG or JPEG.
"""

from io import BytesIO

from PIL import Image, ImageDraw, ImageFont, ImageOps

from .config import settings
from .display import EMPTY, format_date, format_money
from .schemas import CostingRecord

WIDTH = 1080
HEIGHT = 1350
PAD = 54

FORMATS = {
    "png": ("PNG", "image/png"),
    "jpg": ("JPEG", "image/jpeg"),
}

_BG_TOP = (11, 18, 32)
_BG_BOTTOM = (10, 26, 38)


def _font(size: int, bold: bool = False):
    name = "DejaVuSans-Bold.ttf" if bold else "DejaVuSans.ttf"
    try:
        return ImageFont.truetype(name, size)
    except OSError:
        return ImageFont.load_default(size=size)


def _white(alpha: float) -> tuple:
    return (255, 255, 255, round(255 * alpha))


def _gradient(width: int, height: int) -> Image.Image:
    img = Image.new("RGB", (width, height))
    draw = ImageDraw.Draw(img)
    for y in range(height):
        t = y / max(1, height - 1)
        color = tuple(round(a + (b - a) * t) for a, b in zip(_BG_TOP, _BG_BOTTOM))
        draw.line([(0, y), (width, y)], fill=color)
    return img


def _wrap(draw, text: str, font, max_width: int, max_lines: int) -> list[str]:
    """Greedy word wrap; the last allowed line is ellipsized if text remains."""
    words = str(text or "").split()
    lines, current = [], ""
    for word in words:
        candidate = f"{current} {word}".strip()
        if draw.textlength(candidate, font=font) <= max_width or not current:
            current = candidate
            continue
        lines.append(current)
        current = word
        if len(lines) == max_lines:
            break
    else:
        if current:
            lines.append(current)
        return lines[:max_lines]

    last = lines[-1]
    while last and draw.textlength(last + "…", font=font) > max_width:
        last = last[:-1]
    lines[-1] = last.rstrip() + "…"
    return lines


def render_share_card(record: CostingRecord, fmt: str = "png") -> bytes:
    """
    Render the share card for one record.

    Args:
        record: the committed costing
        fmt: "png" or "jpg"

    Raises:
        ValueError: unsupported format.
    """
    if fmt not in FORMATS:
        raise ValueError(f"Unsupported share card format: {fmt}")
    pil_format, _ = FORMATS[fmt]
    currency = record.currency or settings.DEFAULT_CURRENCY

    img = _gradient(WIDTH, HEIGHT)
    # RGBA drawing mode on an RGB image alpha-blends every fill
    draw = ImageDraw.Draw(img, "RGBA")

    card_x, card_y = PAD, PAD
    card_w, card_h = WIDTH - PAD * 2, HEIGHT - PAD * 2
    draw.rounded_rectangle((card_x, card_y, card_x + card_w, card_y + card_h), radius=42, fill=_white(0.08))

    draw.text((card_x + 40, card_y + 38), "Garment Costing", font=_font(44, bold=True), fill=_white(0.92))
    draw.text(
        (card_x + 40, card_y + 94),
        f"Calc: {record.calc_version} • {format_date(record.created_at)}",
        font=_font(24), fill=_white(0.70),
    )

    # Photo area, cover fit
    photo_x, photo_y = card_x + 40, card_y + 150
    photo_w, photo_h = card_w - 80, 560
    draw.rounded_rectangle((photo_x, photo_y, photo_x + photo_w, photo_y + photo_h), radius=32, fill=_white(0.06))
    if record.photo is not None and record.photo.data:
        with Image.open(BytesIO(record.photo.data)) as photo:
            fitted = ImageOps.fit(photo.convert("RGB"), (photo_w, photo_h), Image.LANCZOS)
        mask = Image.new("L", (photo_w, photo_h), 0)
        ImageDraw.Draw(mask).rounded_rectangle((0, 0, photo_w - 1, photo_h - 1), radius=32, fill=255)
        img.paste(fitted, (photo_x, photo_y), mask)

    text_x = card_x + 40
    y = photo_y + photo_h + 30

    # Style name
    name_font = _font(54, bold=True)
    for line in _wrap(draw, record.style_name, name_font, photo_w, 2):
        draw.text((text_x, y), line, font=name_font, fill=_white(0.92))
        y += 60

    # Chips line
    chip_line = (
        f"{record.composition or EMPTY}   •   "
        f"{record.gauge}gg / {round(record.weight_gm)} gm"
    )
    y += 10
    draw.text((text_x, y), chip_line, font=_font(28, bold=True), fill=_white(0.78))

    # FOB highlight
    y += 70
    draw.rounded_rectangle((text_x, y, text_x + photo_w, y + 150), radius=28, fill=(125, 211, 252, 31))
    draw.text((text_x + 28, y + 28), "Final FOB cost per piece", font=_font(28, bold=True), fill=_white(0.86))
    draw.text(
        (text_x + 28, y + 66),
        f"{format_money(record.computed.final_per_pc, currency)} / pc",
        font=_font(64, bold=True), fill=_white(0.96),
    )

    # Disclaimer
    y += 200
    draw.text(
        (text_x + 4, y),
        "Disclaimer: Final costing should be reviewed before buyer submission.",
        font=_font(22), fill=_white(0.60),
    )

    out = BytesIO()
    if pil_format == "JPEG":
        img.save(out, format="JPEG", quality=92)
    else:
        img.save(out, format="PNG")
    return out.getvalue()
