"""Print a one-line summary per event of flat ntuple trees.

Example:
    python bin/dump_events.py ttbar.root --trees Vars --max-events 10 --syst jec --direction down
"""

import argparse
import logging
from itertools import islice

from ntuplereader.btag_reweighting import CorrectionlibBTagReweighter
from ntuplereader.errors import ReaderError
from ntuplereader.reader import Reader
from ntuplereader.reader_config import DEFAULT_CHUNK_SIZE, DEFAULT_TREE
from ntuplereader.source import open_source
from ntuplereader.systematics import SystDirection, SystType, parse_syst_type


def build_parser():
    parser = argparse.ArgumentParser(description="Dump events of flat ntuple trees.")
    parser.add_argument("file", type=str, help="Path or URL of the ROOT file.")
    optional = parser.add_argument_group("Optional arguments")
    optional.add_argument("--trees", nargs="+", default=[DEFAULT_TREE], help=f"Trees to read in order (default: {DEFAULT_TREE}).")
    optional.add_argument("--data", action="store_true", help="Treat the file as collision data (no JEC variants, unit weights).")
    optional.add_argument("--max-events", type=int, default=None, help="Stop after this many events (default: all).")
    optional.add_argument("--syst", type=str, default="nominal", choices=[m.value for m in SystType], help="Systematic variation (default: nominal).")
    optional.add_argument("--direction", type=str, default="up", choices=[d.value for d in SystDirection], help="Direction of the variation (default: up).")
    optional.add_argument("--btag-json", type=str, default=None, help="correctionlib payload with b-tag shape scale factors.")
    optional.add_argument("--no-btag", action="store_true", help="Disable b-tag reweighting of the event weight.")
    optional.add_argument("--chunksize", type=int, default=DEFAULT_CHUNK_SIZE, help=f"Entries read per request (default: {DEFAULT_CHUNK_SIZE}).")
    optional.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    return parser


def validate_arguments(args):
    """Check CLI argument combinations are valid before running."""
    if args.max_events is not None and args.max_events < 0:
        raise ValueError("--max-events must be >= 0")
    if args.chunksize < 1:
        raise ValueError("--chunksize must be a positive integer")
    if args.data and args.btag_json:
        raise ValueError("--btag-json has no effect on collision data")


def format_event(reader):
    """One-line summary of the event currently loaded in *reader*."""
    leptons = reader.leptons
    jets = reader.jets
    lead_lep = f"{leptons[0].pt:.1f}" if leptons else "-"
    lead_jet = f"{jets[0].pt:.1f}" if jets else "-"
    return (
        f"{reader.partition}[{reader.entry}] "
        f"nlep={len(leptons)} lead_lep_pt={lead_lep} "
        f"njet={len(jets)} lead_jet_pt={lead_jet} "
        f"met={reader.met.pt:.1f} npv={reader.num_pv} weight={reader.weight():.6g}"
    )


def dump_events(args, source=None):
    """Read the requested trees and log one line per event.  Returns the event count."""
    if source is None:
        source = open_source(args.file)

    reweighter = CorrectionlibBTagReweighter(args.btag_json) if args.btag_json else None
    reader = Reader(
        source, args.trees, is_mc=not args.data,
        btag_reweighter=reweighter, chunk_size=args.chunksize,
    )
    reader.set_systematics(parse_syst_type(args.syst), SystDirection(args.direction))
    if args.no_btag and reweighter is not None:
        reader.switch_btag_reweighting(False)

    n_events = 0
    for event in islice(reader.events(), args.max_events):
        logging.info(format_event(event))
        n_events += 1

    logging.info("Read %d event(s) from %s", n_events, ", ".join(args.trees))
    return n_events


if __name__ == "__main__":
    parser = build_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
    )

    try:
        validate_arguments(args)
    except ValueError as e:
        parser.error(str(e))

    try:
        dump_events(args)
    except ReaderError:
        logging.exception("Failed to read %s", args.file)
        raise SystemExit(1)
