#!/usr/bin/env python3
"""Query a saved ship-log map from the command line.

Usage:
    python3 scripts/search_map.py maps/solar_system.json "#quantum"
    python3 scripts/search_map.py maps/solar_system.json "the ves" --suggest
"""

import argparse
import logging
import sys

sys.path.insert(0, str(__import__("pathlib").Path(__file__).resolve().parent.parent))

from shiplog_search.config import load_config
from shiplog_search.document import MapDocumentError, load_map
from shiplog_search.engine import SearchEngine
from shiplog_search.extractors import get_extractor


def main() -> int:
    parser = argparse.ArgumentParser(description="Search a ship-log map by hashtag or place name")
    parser.add_argument("map_file", help="Path to a saved map JSON file")
    parser.add_argument("query", help="Query text (quote phrases as \"old ridge\")")
    parser.add_argument("--suggest", action="store_true", help="Print suggestions instead of matches")
    parser.add_argument("--limit", type=int, default=0, help="Suggestion limit (0=config default)")
    parser.add_argument("--extractor", help="Override the text extractor (notes, title_and_notes)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(message)s",
    )
    logger = logging.getLogger("search_map")

    cfg = load_config()
    try:
        extractor = get_extractor(args.extractor or cfg.extractor)
    except ValueError as exc:
        logger.error("%s", exc)
        return 2

    try:
        document = load_map(args.map_file)
    except MapDocumentError as exc:
        logger.error("%s", exc)
        return 1

    engine = SearchEngine(name=document.name, extractor=extractor, suggestion_limit=cfg.suggestion_limit)
    engine.rebuild(document.nodes, document.edges)

    if args.suggest:
        for suggestion in engine.suggest(args.query, limit=args.limit or None):
            print(suggestion)
        return 0

    matches = engine.search(args.query)
    titles = {n.id: n.title for n in document.nodes}
    for node_id in sorted(matches.node_ids):
        print(f"node  {node_id}\t{titles.get(node_id, '')}")
    for edge_id in sorted(matches.edge_ids):
        print(f"edge  {edge_id}")
    if matches.is_empty:
        print("no matches", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
