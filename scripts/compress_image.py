import argparse
import sys
from pathlib import Path

# Ensure repo root is on sys.path when running this script directly.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from partmate.config import get_settings
from partmate.core.logging import setup_logging
from partmate.services.image_compressor import compress_image


def parse_args():
    parser = argparse.ArgumentParser(description="Compress a part photo the way uploads are compressed.")
    parser.add_argument("--path", required=True, help="Image file to compress.")
    parser.add_argument("--output", default=None, help="Output file. Default: <stem>.compressed.jpg")
    parser.add_argument(
        "--max-size-mb",
        type=float,
        default=None,
        help="Size budget in megabytes. Default: IMAGE_MAX_SIZE_MB.",
    )
    return parser.parse_args()


def main():
    setup_logging()
    args = parse_args()
    source = Path(args.path)
    try:
        payload = source.read_bytes()
    except OSError as exc:
        raise SystemExit(f"Cannot read {source}: {exc}") from exc

    max_size_mb = args.max_size_mb if args.max_size_mb is not None else get_settings().IMAGE_MAX_SIZE_MB
    result = compress_image(payload, max_size_mb, filename=source.name)

    output = Path(args.output) if args.output else source.with_name(f"{source.stem}.compressed.jpg")
    if not result.compressed:
        output = output.with_suffix(source.suffix)
    output.write_bytes(result.data)

    print(f"{source} ({len(payload) / (1024 * 1024):.2f} MB) -> {output} ({result.size_mb:.2f} MB)")
    if result.compressed:
        print(f"  {result.width}x{result.height} at quality {result.quality:.1f}")
    else:
        print("  Could not decode image; original bytes copied.")


if __name__ == "__main__":
    main()
