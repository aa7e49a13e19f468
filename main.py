"""Headless demo: push a synthesized tone through the oscilloscope engine."""

import argparse
import logging

import numpy as np

from core import Oscilloscope
from shared.settings import InMemoryPersistence, QSettingsPersistence, ScopeSettingsStore

logger = logging.getLogger("tracescope")

BLOCK_SIZE = 2048


def make_tone(freq_hz: float, sample_rate: float, n_blocks: int, *, noise: float = 0.0, seed: int = 0) -> np.ndarray:
    n_samples = n_blocks * BLOCK_SIZE
    t = np.arange(n_samples, dtype=np.float64) / sample_rate
    tone = 0.5 * np.sin(2.0 * np.pi * freq_hz * t)
    if noise > 0:
        rng = np.random.default_rng(seed)
        tone += noise * rng.standard_normal(n_samples)
    return tone.astype(np.float32)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Feed a test tone through the waveform engine.")
    parser.add_argument("--freq", type=float, default=440.0, help="tone frequency in Hz")
    parser.add_argument("--mode", choices=["stream", "track", "trigger"], default="track")
    parser.add_argument("--blocks", type=int, default=16)
    parser.add_argument("--noise", type=float, default=0.0, help="white noise standard deviation")
    parser.add_argument("--ms-per-div", type=float, default=None, help="horizontal scale in milliseconds per division")
    parser.add_argument("--switch-mode", choices=["stream", "track", "trigger"], default=None,
                        help="focus mode to change to part way through")
    parser.add_argument("--switch-at", type=int, default=None, help="block index for --switch-mode")
    parser.add_argument("--persist", action="store_true", help="load and save settings with QSettings (needs PySide6)")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    persistence = QSettingsPersistence() if args.persist else InMemoryPersistence()
    store = ScopeSettingsStore(persistence=persistence)
    changes = {"mode": args.mode}
    if args.ms_per_div is not None:
        changes["time_per_division_ms"] = args.ms_per_div
    settings = store.update(**changes)

    scope = Oscilloscope.from_settings(settings)
    unbind = scope.bind_settings(store, replay=False)
    signal = make_tone(args.freq, settings.sample_rate, args.blocks, noise=args.noise)

    switch_at = args.switch_at if args.switch_at is not None else args.blocks // 2
    for start in range(0, signal.size, BLOCK_SIZE):
        block_index = start // BLOCK_SIZE
        if args.switch_mode is not None and block_index == switch_at:
            store.update(mode=args.switch_mode)
        frame = scope.feed(signal[start : start + BLOCK_SIZE])
        trace = frame.traces[0]
        logger.info(
            "block %d [%s]: focus=%.2f frequency=%s period=%s",
            block_index,
            frame.mode.value,
            trace.focus,
            trace.frequency_text,
            trace.period_text,
        )
    unbind()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
