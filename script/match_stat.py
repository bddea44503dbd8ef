#!/usr/bin/python3
import os
import sys
import pandas as pd

# import AhoCorasick from "$PWD/../src/AhoCorasick.py"
pwd = os.path.dirname(os.path.realpath(__file__))
sys.path.append(os.path.join(pwd, "..", "src"))
from AhoCorasick import build_automaton  # noqa E402
from ac_cache import load_patterns  # noqa E402


def collect_hits(directory_path, automaton):
    rows = []
    files = sorted([f for f in os.listdir(directory_path) if f.endswith(".txt")])
    for file_name in files:
        file_path = os.path.join(directory_path, file_name)
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                text = f.read()
        except (OSError, UnicodeDecodeError) as e:
            print(f"Error reading file {file_name}: {e}", file=sys.stderr)
            continue
        for rec in automaton.iter_matches(text):
            rows.append({"File": file_name, "Pattern": rec.pattern, "Start": rec.start})
    return pd.DataFrame(rows, columns=["File", "Pattern", "Start"])


def calculate_and_print_csv(directory_path, patterns_path):
    """
    Counts every keyword hit in each .txt file of a directory and prints
    per-pattern totals (hits and number of files hit) as CSV to standard output.
    """
    if not os.path.isdir(directory_path):
        print(f"Error: {directory_path} is not a valid directory.", file=sys.stderr)
        return

    automaton = build_automaton(load_patterns(patterns_path))
    df = collect_hits(directory_path, automaton)
    if df.empty:
        print("No matches found. Exiting.", file=sys.stderr)
        return

    result_df = (
        df.groupby("Pattern")
        .agg(Hits=("Start", "size"), Files=("File", "nunique"))
        .sort_values(["Hits", "Files"], ascending=False)
        .reset_index()
    )
    result_df.to_csv(sys.stdout, index=False)


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(f"Usage: {sys.argv[0]} <directory_path> <patterns_file>", file=sys.stderr)
        sys.exit(1)

    calculate_and_print_csv(sys.argv[1], sys.argv[2])
