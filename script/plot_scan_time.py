import os
import sys
import time
import random
import argparse
import matplotlib.pyplot as plt
import numpy as np

pwd = os.path.dirname(os.path.realpath(__file__))
sys.path.append(os.path.join(pwd, "..", "src"))
from AhoCorasick import build_automaton  # noqa E402

# Configuration variables
ALPHABET = "abcdefgh"
NUM_PATTERNS = 2000
PATTERN_LEN = (2, 8)
REPEATS = 5

AXIS_LABEL_FONT_SIZE = 16
TICK_LABEL_FONT_SIZE = 14


def random_text(rng: random.Random, length: int) -> str:
    return "".join(rng.choice(ALPHABET) for _ in range(length))


def measure(automaton, text: str) -> float:
    best = float("inf")
    for _ in range(REPEATS):
        start = time.perf_counter()
        automaton.search(text)
        best = min(best, time.perf_counter() - start)
    return best


def plot_scan_time(max_len: int, steps: int, output_filename: str, seed: int):
    """
    Times `search` on random texts of increasing length and plots the best
    of REPEATS runs together with a least-squares linear fit.
    """
    rng = random.Random(seed)
    patterns = [
        random_text(rng, rng.randint(*PATTERN_LEN)) for _ in range(NUM_PATTERNS)
    ]
    automaton = build_automaton(patterns)

    sizes = np.linspace(max_len // steps, max_len, steps, dtype=int)
    times = np.array([measure(automaton, random_text(rng, int(n))) for n in sizes])
    slope, intercept = np.polyfit(sizes, times, 1)

    fig, ax = plt.subplots(figsize=(8, 5))
    ax.plot(sizes, times, marker="o", linestyle="-", color="red", label="search")
    ax.plot(
        sizes,
        slope * sizes + intercept,
        linestyle="--",
        color="gray",
        label=f"linear fit ({slope * 1e6:.3f} us/char)",
    )
    ax.set_xlabel("Text length (chars)", fontsize=AXIS_LABEL_FONT_SIZE)
    ax.set_ylabel("Scan time (sec)", fontsize=AXIS_LABEL_FONT_SIZE)
    ax.tick_params(labelsize=TICK_LABEL_FONT_SIZE)
    ax.grid(True, linestyle="--", alpha=0.6)
    ax.legend()

    fig.tight_layout()
    plt.savefig(output_filename)
    plt.close(fig)
    print(f"Saved {output_filename}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Plot scan time against text length.")
    parser.add_argument("--max-len", type=int, default=200000)
    parser.add_argument("--steps", type=int, default=10)
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("-o", "--output", default="scan_time.svg")
    args = parser.parse_args()
    plot_scan_time(args.max_len, args.steps, args.output, args.seed)
