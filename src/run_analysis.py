"""
Main entry point for the Z/gamma* -> dijet / dimuon analysis.

Generates (or replays) collision events, reconstructs the two leading
objects in each event (anti-kt jets or the first muon pair), fills an
invariant-mass histogram and exports it once the loop is done.
"""

import argparse
import logging
import time

from src.analysis.config import load_config
from src.analysis.driver import analyze_events
from src.analysis.histogram import MassHistogram
from src.analysis.io import RootEventSource
from src.analysis.plotting import PlotOptions, export_histogram
from src.analysis.reconstruction import build_reconstructor
from src.generation.pythia import PythiaGenerator

logger = logging.getLogger(__name__)


# Argument parsing and config loading
def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Boson invariant-mass analysis from dijet or dimuon final states."
    )
    parser.add_argument(
        "--config",
        default="config/dijet.yaml",
        help="Path to YAML configuration file.",
    )
    parser.add_argument(
        "--n-events",
        type=int,
        default=None,
        help="Override the number of events from the configuration.",
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Override the output directory from the configuration.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override any configuration value, e.g. --set reconstruction.radius=0.6.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    return parser.parse_args(argv)


def cli_overrides(args):
    """Command-line options as a dotlist of configuration overrides."""
    overrides = list(args.overrides)
    if args.n_events is not None:
        overrides.append(f"n_events={args.n_events}")
    if args.output_dir is not None:
        overrides.append(f"output_dir={args.output_dir}")
    return overrides


def build_generator(config):
    gen_cfg = config["generator"]
    if gen_cfg["backend"] == "root":
        return RootEventSource(gen_cfg["input_file"], tree=gen_cfg.get("tree"))
    return PythiaGenerator.for_channel(
        config["channel"], ecm=gen_cfg["ecm"], seed=gen_cfg.get("seed")
    )


def run(config):
    """
    Full analysis for one validated configuration.

    Steps:
      1. Build histogram and reconstructor (fails early on bad settings).
      2. Initialise the event generator.
      3. Loop over the configured number of events.
      4. Export the histogram once.
    """
    # 1) Setup
    plot_options = PlotOptions.from_config(config.plot.model_dump())
    histogram = MassHistogram.from_config(
        config["hist"], name=plot_options.name, label=plot_options.xlabel
    )
    reconstructor = build_reconstructor(config["reconstruction"])

    # 2) + 3) Event loop
    with build_generator(config) as generator:
        summary = analyze_events(
            generator,
            reconstructor,
            histogram,
            config["n_events"],
            progress_every=config["progress_every"],
        )

    # 4) Export
    figure = export_histogram(histogram, plot_options, config["output_dir"])
    return histogram, summary, figure


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config, cli_overrides(args))

    start_time = time.perf_counter()
    histogram, summary, figure = run(config)
    wall_time = time.perf_counter() - start_time

    # Final summary
    print(f"Channel: {config['channel']} ({config['reconstruction']['strategy']})")
    print(f"Events requested: {summary.n_requested}")
    print(f"Generation failures: {summary.n_generation_failures}")
    print(f"Events with < 2 objects: {summary.n_insufficient}")
    print(f"Invalid (NaN) masses dropped: {summary.n_invalid_mass}")
    print(f"Total histogram entries: {histogram.entries} "
          f"(underflow {histogram.underflow}, overflow {histogram.overflow})")
    print(f"<m> = {histogram.mean():.2f} GeV, RMS = {histogram.rms():.2f} GeV")
    print(f"Total wall time: {wall_time:.2f} s")
    if wall_time > 0:
        rate = summary.n_requested / wall_time
        print(f"Average processing rate: {rate:.1f} events/s")
    print(f"Saved outputs to {figure}")


if __name__ == "__main__":
    main()
