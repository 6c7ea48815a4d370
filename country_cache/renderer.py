import os
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from PIL import Image, ImageDraw, ImageFont

from country_cache.config import config
from country_cache.log import setup_logger
from country_cache.schema import TopCountry

logger = setup_logger(__name__, "service.log")

IMAGE_FILE_NAME = "summary.png"

WIDTH, HEIGHT = 800, 600
GRADIENT_TOP = (30, 58, 138)
GRADIENT_BOTTOM = (59, 130, 246)
BADGE_COLOR = (251, 191, 36)
WHITE = (255, 255, 255)
LIGHT_GREY = (229, 231, 235)
MID_GREY = (156, 163, 175)

ROW_START = 230
ROW_SPACING = 65
BADGE_X = 80
BADGE_RADIUS = 18


def get_image_filepath(file_name: str = IMAGE_FILE_NAME) -> Path:
    return Path(config.CACHE_DIR) / file_name


def format_gdp(gdp: Optional[float]) -> str:
    if not gdp:
        return "0"
    if gdp >= 1e12:
        return f"{gdp / 1e12:.2f}T"
    if gdp >= 1e9:
        return f"{gdp / 1e9:.2f}B"
    if gdp >= 1e6:
        return f"{gdp / 1e6:.2f}M"
    return f"{gdp:,.2f}"


def format_timestamp(value: datetime) -> str:
    """Medium date, short time: ``Oct 17, 2026, 3:04 PM``."""
    hour = value.hour % 12 or 12
    return f"{value:%b} {value.day}, {value.year}, {hour}:{value:%M %p}"


def _font(size: int, bold: bool = False):
    name = "arialbd.ttf" if bold else "arial.ttf"
    for candidate in (name, "DejaVuSans-Bold.ttf" if bold else "DejaVuSans.ttf"):
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def _draw_gradient(draw: ImageDraw.ImageDraw):
    for y in range(HEIGHT):
        ratio = y / (HEIGHT - 1)
        color = tuple(
            round(top + (bottom - top) * ratio)
            for top, bottom in zip(GRADIENT_TOP, GRADIENT_BOTTOM)
        )
        draw.line([(0, y), (WIDTH, y)], fill=color)


def _centered_text(draw: ImageDraw.ImageDraw, y: int, text: str, font, fill=WHITE):
    draw.text((WIDTH / 2, y), text, fill=fill, font=font, anchor="ms")


def generate_summary_image(
    total_countries: int,
    top_countries: list[TopCountry],
    last_refreshed: Optional[datetime],
    path: Optional[Union[str, Path]] = None,
) -> Path:
    """
    Paint the refresh summary and write it over the previous one.

    Layout: title and total count centred at the top, up to five ranked rows
    (badge, name, formatted GDP, currency code) at a fixed pitch, and the
    refresh time as a footer. Returns the path that was written.
    """
    path = Path(path) if path is not None else get_image_filepath()
    logger.info(
        f"Generating image with total_countries={total_countries}, "
        f"top={[c.name for c in top_countries]}, last_refresh={last_refreshed}"
    )

    image = Image.new("RGB", (WIDTH, HEIGHT), color=GRADIENT_TOP)
    draw = ImageDraw.Draw(image)
    _draw_gradient(draw)

    _centered_text(draw, 60, "Country Data Summary", _font(36, bold=True))
    _centered_text(draw, 120, f"Total Countries: {total_countries}", _font(24, bold=True))
    _centered_text(draw, 180, "Top 5 Countries by GDP", _font(28, bold=True))

    name_font = _font(20)
    gdp_font = _font(18)
    code_font = _font(16)
    rank_font = _font(18, bold=True)

    y = ROW_START
    for rank, country in enumerate(top_countries[:5], 1):
        draw.ellipse(
            [
                (BADGE_X - BADGE_RADIUS, y - BADGE_RADIUS),
                (BADGE_X + BADGE_RADIUS, y + BADGE_RADIUS),
            ],
            fill=BADGE_COLOR,
        )
        draw.text((BADGE_X, y), str(rank), fill=GRADIENT_TOP, font=rank_font, anchor="mm")

        draw.text((120, y + 5), country.name, fill=WHITE, font=name_font, anchor="ls")
        draw.text((120, y + 28), f"GDP: ${format_gdp(country.estimated_gdp)}",
                  fill=LIGHT_GREY, font=gdp_font, anchor="ls")
        draw.text((450, y + 5), f"({country.currency_code})",
                  fill=MID_GREY, font=code_font, anchor="ls")
        y += ROW_SPACING

    refreshed = format_timestamp(last_refreshed) if last_refreshed else "never"
    _centered_text(draw, HEIGHT - 40, f"Last Refreshed: {refreshed}", _font(18), fill=LIGHT_GREY)

    os.makedirs(path.parent, exist_ok=True)
    image.save(path, "PNG")
    logger.info(f"Summary image generated at: {path}")
    return path
