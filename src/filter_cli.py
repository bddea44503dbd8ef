#!/usr/bin/python3
import argparse
import logging
import sys
from typing import Optional

import ac_common as acc
from AhoCorasick import Automaton, build_automaton
from ac_cache import load_patterns, load_or_build, save_cache


def read_text(text_file: Optional[str]) -> str:
    if text_file is None:
        return sys.stdin.read()
    with open(text_file, "r", encoding="utf-8") as f:
        return f.read()


def get_automaton(args, config: acc.EnvConfig) -> Automaton:
    patterns = load_patterns(args.patterns)
    cache_path = args.cache or config.cache_path
    if cache_path:
        max_age = args.max_age if args.max_age is not None else config.cache_max_age
        automaton, _ = load_or_build(patterns, cache_path, max_age)
        return automaton
    return build_automaton(patterns)


def cmd_check(args, config) -> int:
    automaton = get_automaton(args, config)
    if automaton.contains_any(read_text(args.text_file)):
        print("blocked")
        return 1
    print("clean")
    return 0


def cmd_scan(args, config) -> int:
    automaton = get_automaton(args, config)
    text = read_text(args.text_file)
    records = automaton.find_longest(text) if args.longest else automaton.search(text)
    for rec in records:
        print(f"{rec.pattern}\t{rec.start}\t{rec.end}")
    return 0


def cmd_redact(args, config) -> int:
    automaton = get_automaton(args, config)
    sys.stdout.write(automaton.redact(read_text(args.text_file), args.replacement))
    return 0


def cmd_build(args, config) -> int:
    automaton = build_automaton(load_patterns(args.patterns))
    save_cache(args.output, automaton)
    logging.info(f"Wrote {automaton.node_count} nodes to {args.output}")
    return 0


def cmd_dump(args, config) -> int:
    # graphviz is only needed here
    import automaton_dumper

    automaton = get_automaton(args, config)
    path = automaton_dumper.dump(automaton, args.output, args.format, not args.no_fail)
    logging.info(f"Rendered {path}")
    return 0


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Keyword blocklist filter")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("-q", "--quiet", action="store_true", help="disable logging")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_common(p, with_text=True):
        p.add_argument("patterns", help="keyword file, one per line")
        if with_text:
            p.add_argument("text_file", nargs="?", help="text to scan (stdin if omitted)")
        p.add_argument("--cache", help="cache file (.json or .pkl)")
        p.add_argument("--max-age", type=int, help="cache max age in seconds")

    p = sub.add_parser("check", help="exit 1 if any keyword occurs")
    add_common(p)
    p.set_defaults(func=cmd_check)

    p = sub.add_parser("scan", help="print every match")
    add_common(p)
    p.add_argument("--longest", action="store_true", help="leftmost-longest matches only")
    p.set_defaults(func=cmd_scan)

    p = sub.add_parser("redact", help="mask every match")
    add_common(p)
    p.add_argument("-r", "--replacement", default="*")
    p.set_defaults(func=cmd_redact)

    p = sub.add_parser("build", help="build and serialize the automaton")
    p.add_argument("patterns")
    p.add_argument("output", help="output file (.json or .pkl)")
    p.set_defaults(func=cmd_build)

    p = sub.add_parser("dump", help="render the automaton with graphviz")
    add_common(p, with_text=False)
    p.add_argument("output", help="output path without extension")
    p.add_argument("-f", "--format", default="svg")
    p.add_argument("--no-fail", action="store_true", help="omit fail links")
    p.set_defaults(func=cmd_dump)

    args = parser.parse_args(argv)
    if args.command == "redact" and len(args.replacement) != 1:
        parser.error("--replacement must be a single character")
    return args


def main(argv=None) -> int:
    args = parse_args(argv)
    config = acc.read_env_configs()
    acc.setup_logging(config.log_enabled and not args.quiet, args.verbose)
    return args.func(args, config)


if __name__ == "__main__":
    sys.exit(main())
