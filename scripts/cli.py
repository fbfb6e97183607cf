"""
CLI to run face + gesture detection on still images -> JSON.
"""
from __future__ import annotations
import argparse, json, logging, os
from facehand.backend import describe_environment, select_backend
from facehand.config import Settings
from facehand.imaging import load_image
from facehand.pipeline import analyze_image, analyze_samples
from facehand.visual import annotate_image

def main():
    p = argparse.ArgumentParser()
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--image", help="Path to input image")
    src.add_argument("--samples", action="store_true", help="Analyze SAMPLES from SAMPLES_DIR")
    p.add_argument("--backend", default=None, help="Compute backend: cpu or gpu")
    p.add_argument("--annotate", default=None, help="Directory for annotated copies of the images")
    p.add_argument("--out", default="output/detections.json", help="Path to output JSON")
    args = p.parse_args()

    settings = Settings()
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL, logging.INFO))
    select_backend(args.backend, settings)
    describe_environment()

    if args.image:
        results = [analyze_image(args.image, settings)]
        sources = {os.path.basename(args.image): args.image}
    else:
        results = analyze_samples(settings)
        sources = {name: os.path.join(settings.SAMPLES_DIR, name) for name in settings.SAMPLES}
    print(json.dumps(results, indent=2, ensure_ascii=False))

    if args.annotate:
        os.makedirs(args.annotate, exist_ok=True)
        for res in results:
            frame = load_image(sources[res["source"]], settings.IMG_SIZE)
            annotate_image(frame, res, os.path.join(args.annotate, res["source"]))

    # Also write to file
    os.makedirs(os.path.dirname(args.out) or ".", exist_ok=True)
    with open(args.out, "w", encoding="utf-8") as f:
        json.dump(results, f, indent=2, ensure_ascii=False)
    print(f"Detections written to {args.out}")

if __name__ == "__main__":
    main()
