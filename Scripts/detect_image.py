import argparse
from pathlib import Path

import cv2

from ssd_kit import (
    DetectionFilterConfig,
    InferenceController,
    load_controller,
    load_detector_config,
    read_label_map,
    setup_logging,
)


def main() -> int:
    parser = argparse.ArgumentParser(description="Run SSD person detection on a single image.")
    parser.add_argument("--image", required=True, help="Path to an input image (BGR, any resolution).")
    parser.add_argument("--config", default=None, help="Detector config JSON; overrides --model/--policy/--conf.")
    parser.add_argument("--model", default="models/ssd_mobilenet_v2_coco.onnx", help="Path to an SSD model (.onnx).")
    parser.add_argument("--policy", default="MULTI", help='Backend policy: "MULTI", "MULTI:GPU,CPU" or a device name.')
    parser.add_argument("--conf", type=float, default=0.55, help="Confidence threshold.")
    parser.add_argument("--label", type=int, default=1, help="Target class id.")
    parser.add_argument("--metadata", default=None, help="Optional label map (names mapping) for printing.")
    parser.add_argument("--log-level", default="INFO", help="Logging level.")
    parser.add_argument("--log-file", default=None, help="Optional log file path.")
    args = parser.parse_args()

    setup_logging(args.log_level, args.log_file)

    if args.config:
        controller = load_controller(load_detector_config(Path(args.config)))
    else:
        controller = InferenceController(
            args.model,
            args.policy,
            filter_cfg=DetectionFilterConfig(conf_threshold=args.conf, target_label=args.label),
        )

    if not controller.start():
        return 1

    img = cv2.imread(args.image)
    if img is None:
        raise FileNotFoundError(f"Could not read image at path: {args.image}")

    class_names = read_label_map(args.metadata) if args.metadata else {}
    for det in controller.process_frames(img):
        print(class_names.get(det.label, str(det.label)), det.as_xyxy())

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
