"""
Radio Source Estimation Example.

Locates a simulated WiFi access point from ranging readings, and from
ranging + RSSI readings, collected at random receiver positions. Each preset
runs a Monte Carlo experiment and reports position, transmitted power and
path-loss errors.

Can run with:
    - Default preset: python example_radio_source_estimation.py
    - Other preset: python example_radio_source_estimation.py --preset noisy
    - List presets: python example_radio_source_estimation.py --list-presets

Demonstrates:
    - Linear lateration (homogeneous and inhomogeneous)
    - Levenberg-Marquardt refinement with covariance
    - Joint transmitted power / path-loss estimation
"""

import argparse
import time
from pathlib import Path
from typing import Dict, Optional

import matplotlib.pyplot as plt
import numpy as np
from tqdm import tqdm

from rfloc.errors import EstimationError
from rfloc.radiosource import (
    RangingAndRssiRadioSourceEstimator,
    RangingRadioSourceEstimator,
)
from rfloc.rf import (
    WifiAccessPoint,
    random_receiver_positions,
    simulate_ranging_and_rssi_readings,
    simulate_ranging_readings,
)

PRESETS = {
    "noiseless": {
        "description": "Exact readings, 3D, range + RSSI with power and path loss",
        "dim": 3,
        "n_readings": 20,
        "n_trials": 20,
        "distance_std": 0.0,
        "rssi_std": 0.0,
        "tx_power_dbm": -50.0,
        "path_loss_exp": 2.5,
        "estimate_path_loss": True,
        "homogeneous": False,
    },
    "noisy": {
        "description": "Gaussian noise on distances and RSSI, 3D",
        "dim": 3,
        "n_readings": 100,
        "n_trials": 50,
        "distance_std": 0.2,
        "rssi_std": 1.0,
        "tx_power_dbm": -50.0,
        "path_loss_exp": 2.0,
        "estimate_path_loss": False,
        "homogeneous": False,
    },
    "planar": {
        "description": "2D floor plan, homogeneous linear solver",
        "dim": 2,
        "n_readings": 10,
        "n_trials": 50,
        "distance_std": 0.1,
        "rssi_std": 0.5,
        "tx_power_dbm": -40.0,
        "path_loss_exp": 2.0,
        "estimate_path_loss": False,
        "homogeneous": True,
    },
}


def run_preset(name: str, n_trials: Optional[int] = None, verbose: bool = True) -> Dict:
    """Run the Monte Carlo experiment of a preset.

    Args:
        name: Preset name (key of PRESETS).
        n_trials: Override the number of trials.
        verbose: Print per-preset summary.

    Returns:
        Dictionary with error arrays for the ranging and ranging+RSSI
        estimators and the number of failed trials.
    """
    cfg = PRESETS[name]
    n_trials = n_trials or cfg["n_trials"]
    dim = cfg["dim"]
    ap = WifiAccessPoint("00:11:22:33:44:55", 2.4e9, ssid="example")

    ranging_errors = []
    rssi_errors = []
    power_errors = []
    path_loss_errors = []
    failures = 0

    for _ in tqdm(range(n_trials), desc=f"Preset '{name}'", unit="trial", disable=not verbose):
        source_position = np.random.uniform(-50.0, 50.0, size=dim)
        receivers = random_receiver_positions(cfg["n_readings"], dim=dim)

        ranging_readings = simulate_ranging_readings(
            ap,
            source_position,
            receivers,
            distance_std=cfg["distance_std"],
            reported_distance_std=cfg["distance_std"] or None,
        )
        rssi_readings = simulate_ranging_and_rssi_readings(
            ap,
            source_position,
            receivers,
            cfg["tx_power_dbm"],
            path_loss_exp=cfg["path_loss_exp"],
            distance_std=cfg["distance_std"],
            rssi_std=cfg["rssi_std"],
            reported_distance_std=cfg["distance_std"] or None,
            reported_rssi_std=cfg["rssi_std"] or None,
        )

        ranging = RangingRadioSourceEstimator(
            ranging_readings,
            dimension=dim,
            homogeneous_linear_solver_used=cfg["homogeneous"],
        )
        rssi = RangingAndRssiRadioSourceEstimator(
            rssi_readings,
            dimension=dim,
            homogeneous_linear_solver_used=cfg["homogeneous"],
            initial_path_loss_exponent=2.0,
            path_loss_estimation_enabled=cfg["estimate_path_loss"],
        )

        try:
            ranging.estimate()
            rssi.estimate()
        except EstimationError:
            failures += 1
            continue

        ranging_errors.append(np.linalg.norm(ranging.estimated_position - source_position))
        rssi_errors.append(np.linalg.norm(rssi.estimated_position - source_position))
        power_errors.append(abs(rssi.estimated_transmitted_power_dbm - cfg["tx_power_dbm"]))
        path_loss_errors.append(abs(rssi.estimated_path_loss_exponent - cfg["path_loss_exp"]))

    results = {
        "ranging": np.array(ranging_errors),
        "ranging_rssi": np.array(rssi_errors),
        "power": np.array(power_errors),
        "path_loss": np.array(path_loss_errors),
        "failures": failures,
    }

    if verbose:
        print(f"\n{cfg['description']}")
        print("-" * 70)
        for key, label in [("ranging", "Ranging"), ("ranging_rssi", "Ranging + RSSI")]:
            errors = results[key]
            if len(errors) > 0:
                rmse = np.sqrt(np.mean(errors**2))
                print(f"  {label:<16} position RMSE: {rmse:.4f} m "
                      f"(median {np.median(errors):.4f} m)")
        if len(results["power"]) > 0:
            print(f"  {'Tx power':<16} mean abs error: {np.mean(results['power']):.4f} dB")
            if cfg["estimate_path_loss"]:
                print(f"  {'Path loss':<16} mean abs error: {np.mean(results['path_loss']):.4f}")
        print(f"  Failed trials: {failures}/{n_trials}")

    return results


def plot_results(results: Dict, name: str):
    """Plot the position error distributions of a preset."""
    fig, ax = plt.subplots(figsize=(8, 5))
    for key, label in [("ranging", "Ranging"), ("ranging_rssi", "Ranging + RSSI")]:
        errors = np.sort(results[key])
        if len(errors) == 0:
            continue
        cdf = np.arange(1, len(errors) + 1) / len(errors)
        ax.plot(errors, cdf, label=label, linewidth=2)

    ax.set_xlabel("Position error (m)")
    ax.set_ylabel("CDF")
    ax.set_title(f"Radio Source Position Error ({name})")
    ax.legend()
    ax.grid(True, alpha=0.3)
    return fig


def main():
    """Run radio source estimation example."""
    parser = argparse.ArgumentParser(
        description="Radio source position, power and path-loss estimation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the default preset
  python example_radio_source_estimation.py

  # Run the noisy preset with 200 trials
  python example_radio_source_estimation.py --preset noisy --trials 200
        """
    )
    parser.add_argument(
        "--preset", type=str, default="noiseless", choices=list(PRESETS.keys()),
        help="Scenario preset"
    )
    parser.add_argument(
        "--list-presets", action="store_true",
        help="List available presets and exit"
    )
    parser.add_argument(
        "--trials", type=int, default=None,
        help="Number of Monte Carlo trials (default: preset value)"
    )
    parser.add_argument(
        "--seed", type=int, default=42,
        help="Random seed"
    )
    parser.add_argument(
        "--output", type=str, default=None,
        help="Output file for figure (default: radio_source_examples/figs/<preset>.png)"
    )

    args = parser.parse_args()

    if args.list_presets:
        for name, cfg in PRESETS.items():
            print(f"  {name:<10} {cfg['description']}")
        return

    np.random.seed(args.seed)
    start = time.time()

    print("\n" + "=" * 70)
    print(f"Radio Source Estimation: preset '{args.preset}'")
    print("=" * 70)

    results = run_preset(args.preset, n_trials=args.trials)

    plot_results(results, args.preset)
    output_file = args.output or f"radio_source_examples/figs/{args.preset}.png"
    Path(output_file).parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(output_file, dpi=150, bbox_inches="tight")
    print(f"\n✓ Figure saved: {output_file}")
    print(f"Total execution time: {time.time() - start:.2f} seconds")
    plt.show()


if __name__ == "__main__":
    main()
