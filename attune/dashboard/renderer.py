"""Dashboard image renderer for the trailing-days progress rollup."""

import logging
from datetime import datetime
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont

from attune.progress.assembler import DayRow

logger = logging.getLogger(__name__)


class DashboardRenderer:
    """Renders the daily totals list to a monochrome image."""

    def __init__(self, output_dir: str = "static/images"):
        """
        Initialize renderer.

        Args:
            output_dir: Directory to save generated images
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        self.fonts = self._load_fonts()

    def _load_fonts(self) -> dict:
        """Load fonts for rendering."""
        fonts = {}

        font_paths = [
            "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
            "/System/Library/Fonts/Helvetica.ttc",  # macOS
        ]

        for path in font_paths:
            if not Path(path).exists():
                continue
            try:
                fonts["header"] = ImageFont.truetype(path, 24)
                fonts["normal"] = ImageFont.truetype(path, 16)
                fonts["small"] = ImageFont.truetype(path, 14)
                logger.info(f"Loaded fonts from {path}")
                break
            except OSError as e:
                logger.warning(f"Could not load TrueType font {path}: {e}")
                fonts = {}

        # Fall back to default fonts
        if not fonts:
            default_font = ImageFont.load_default()
            fonts["header"] = default_font
            fonts["normal"] = default_font
            fonts["small"] = default_font

        return fonts

    def render(
        self,
        day_rows: list[DayRow],
        streak: int = 0,
        width: int = 800,
        height: int = 480,
    ) -> tuple[str, str]:
        """
        Render the dashboard.

        Args:
            day_rows: Day rows, today first
            streak: Current streak in days
            width: Image width
            height: Image height

        Returns:
            Tuple of (filename, file_path)
        """
        logger.info(f"Rendering dashboard with {len(day_rows)} days")

        image = Image.new("RGB", (width, height), "white")
        draw = ImageDraw.Draw(image)

        self._draw_header(draw, day_rows, width)
        self._draw_days(draw, day_rows, width, height)
        self._draw_footer(draw, streak, width, height)

        # e-ink friendly
        image = image.convert("1")

        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        filename = f"dashboard-{timestamp}"
        file_path = self.output_dir / f"{filename}.png"

        image.save(file_path, "PNG")
        logger.info(f"Saved dashboard to {file_path}")

        return filename, str(file_path)

    def _draw_header(self, draw: ImageDraw.ImageDraw, day_rows: list[DayRow], width: int):
        """Draw header with the date range."""
        if day_rows:
            first, last = day_rows[-1].date, day_rows[0].date
            header = f"Progress: {first.strftime('%b %d')} - {last.strftime('%b %d, %Y')}"
        else:
            header = "Progress"
        draw.text((20, 15), header, fill="black", font=self.fonts["header"])

        draw.line([20, 50, width - 20, 50], fill="black", width=2)

    def _draw_days(self, draw: ImageDraw.ImageDraw, day_rows: list[DayRow], width: int, height: int):
        """Draw one row per day with a progress bar."""
        y = 65
        row_height = 48
        bar_x = 170
        bar_width = 400
        bar_height = 22

        for row in day_rows:
            if y > height - 80:  # Leave room for footer
                break

            label = row.date.strftime("%a %b %d")
            draw.text((30, y + 2), label, fill="black", font=self.fonts["normal"])

            self._draw_progress_bar(draw, bar_x, y, bar_width, bar_height, row.overall_percent)

            percent_text = f"{round(row.overall_percent * 100)}%"
            draw.text((bar_x + bar_width + 15, y + 2), percent_text, fill="black", font=self.fonts["normal"])

            if row.mood_label:
                bbox = draw.textbbox((0, 0), row.mood_label, font=self.fonts["small"])
                text_width = bbox[2] - bbox[0]
                draw.text((width - text_width - 30, y + 4), row.mood_label, fill="black", font=self.fonts["small"])

            y += row_height

    def _draw_progress_bar(
        self,
        draw: ImageDraw.ImageDraw,
        x: int,
        y: int,
        width: int,
        height: int,
        percent: float,
    ):
        """Draw an outlined bar filled to `percent` (0-1)."""
        filled_width = int(width * min(1.0, max(0.0, percent)))

        if filled_width > 0:
            draw.rectangle([x, y, x + filled_width, y + height], fill="black", outline="black")

        draw.rectangle([x, y, x + width, y + height], outline="black", width=2)

    def _draw_footer(self, draw: ImageDraw.ImageDraw, streak: int, width: int, height: int):
        """Draw footer with streak and update time."""
        y = height - 35

        draw.line([20, y - 10, width - 20, y - 10], fill="black", width=2)

        if streak:
            summary_text = f"Streak: {streak} day{'s' if streak != 1 else ''}"
        else:
            summary_text = "Streak: none yet"
        draw.text((20, y), summary_text, fill="black", font=self.fonts["normal"])

        time_text = f"Last update: {datetime.now().strftime('%H:%M')}"
        bbox = draw.textbbox((0, 0), time_text, font=self.fonts["small"])
        text_width = bbox[2] - bbox[0]
        draw.text((width - text_width - 20, y + 2), time_text, fill="black", font=self.fonts["small"])
