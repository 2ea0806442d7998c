"""
segrefine - Main Pipeline Script

This script provides a command-line interface for refining raw
instance-segmentation output saved as ``.npz`` into final detections.
system_logger prints simplified logs to the terminal and full logs to the
log directory.
"""

import argparse
import json
import logging
import sys

import yaml

from segrefine.data.datasets import detections_to_records, load_raw_batch, read_class_names, write_records
from segrefine.functions.refinement import refine_detections
from segrefine.utils.config import RefinementSettings, get_config, list_profiles
from segrefine.utils.exceptions import PipelineError
from segrefine.utils.logger_utils import set_console_log_level, system_logger

VERBOSITY_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def build_parser():
    """Builds the argument parser for all tasks."""
    parser = argparse.ArgumentParser(
        description="segrefine - Detection refinement for instance-segmentation output.\n"
        "Filters, de-duplicates and rasterizes raw model candidates.",
        epilog="""
QUICK START EXAMPLES:

Refine a saved inference output:
  python main.py --task refine --input raw.npz --classes classes.txt \\
      --pad-x 0 --pad-y 80 --width 1280 --height 960 --output result.json

Use a threshold profile from the config file:
  python main.py --task refine --input raw.npz --classes classes.txt \\
      --pad-x 0 --pad-y 80 --width 1280 --height 960 --profile small

Show the effective configuration:
  python main.py --task show-config --config config/config.yaml

TASK DESCRIPTIONS:

refine       Run the refinement pipeline and write JSON detections
show-config  Print the merged configuration and available profiles
""",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--task",
        type=str,
        required=True,
        choices=["refine", "show-config"],
        help="Task to perform:\n"
        "• 'refine': Refine raw candidates from an .npz archive\n"
        "• 'show-config': Print the effective configuration",
    )
    parser.add_argument("--input", type=str, help="Path to the raw inference .npz archive.")
    parser.add_argument("--classes", type=str, help="Line-delimited class-name file.")
    parser.add_argument("--pad-x", dest="pad_x", type=int, default=0, help="Horizontal letterbox padding. [default: 0]")
    parser.add_argument("--pad-y", dest="pad_y", type=int, default=0, help="Vertical letterbox padding. [default: 0]")
    parser.add_argument("--width", type=int, help="Original image width in pixels.")
    parser.add_argument("--height", type=int, help="Original image height in pixels.")
    parser.add_argument("--config", type=str, default=None, help="Configuration YAML file.")
    parser.add_argument("--profile", type=str, default=None, help="Threshold profile from the configuration.")
    parser.add_argument("--output", type=str, default=None, help="Output JSON path. Prints to stdout when omitted.")
    parser.add_argument(
        "--verbosity",
        type=str,
        default="info",
        choices=list(VERBOSITY_LEVELS),
        help="Console logging verbosity level. File logs always include DEBUG. [default: info]",
    )
    return parser


def run_refine_task(args, config):
    """Loads the batch, runs refinement and writes the records."""
    settings = RefinementSettings.from_config(config, profile=args.profile)
    class_names = read_class_names(args.classes)
    batch = load_raw_batch(
        args.input,
        pad_x=args.pad_x,
        pad_y=args.pad_y,
        original_width=args.width,
        original_height=args.height,
        canvas_size=settings.infer_size,
    )
    records = detections_to_records(refine_detections(batch, class_names, settings))

    if args.output:
        write_records(records, args.output)
    else:
        json.dump(records, sys.stdout)
        sys.stdout.write("\n")
    return records


def main(argv=None):
    """
    Main function that parses command line arguments and executes the requested task.

    Returns:
    - int: Process exit code
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    set_console_log_level(VERBOSITY_LEVELS[args.verbosity])

    if args.task == "refine":
        missing = [name for name in ("input", "classes", "width", "height") if getattr(args, name) is None]
        if missing:
            parser.error(f"--{', --'.join(missing)} required for task 'refine'")

    try:
        config = get_config(args.config)
        if args.task == "show-config":
            yaml.safe_dump(config, sys.stdout, sort_keys=False)
            sys.stdout.write(f"# profiles: {', '.join(list_profiles(config)) or 'none'}\n")
        elif args.task == "refine":
            run_refine_task(args, config)
    except (PipelineError, FileNotFoundError, yaml.YAMLError) as e:
        system_logger.error(f"Task '{args.task}' failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
