from pathlib import Path


PACKAGE_DIR = Path(__file__).resolve().parents[1]
PROJECT_ROOT = PACKAGE_DIR.parent

LOW_STOCK_THRESHOLD = 5
RECENT_PARTS_LIMIT = 5

MAX_IMAGE_DIMENSION = 1920
INITIAL_JPEG_QUALITY = 0.9
MIN_JPEG_QUALITY = 0.1
JPEG_QUALITY_STEP = 0.1

STOCK_OPERATIONS = ("add", "subtract")

MEDIA_ROUTE = "/media"
