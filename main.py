#!/usr/bin/env python3
"""
Main entry point for the cloth solver.

Usage:
    python main.py forward --mode projective --steps 200 --save trajectory.npy --animate
    python main.py spring --steps 100
"""

import argparse
import logging
import sys

from cloth_solver import (
    Mode,
    SimConfig,
    Simulator,
    animate_particles,
    plot_trajectories,
    save_trajectory,
    setup_logging,
)

logger = logging.getLogger("cloth_solver.main")


def add_physics_arguments(parser):
    """Arguments shared by every subcommand."""
    parser.add_argument("--dt", type=float, default=0.1, help="Time step")
    parser.add_argument("--g", type=float, default=9.8, help="Gravity")
    parser.add_argument(
        "--air-resistance", type=float, default=0.0, help="Velocity fraction lost per step"
    )
    parser.add_argument("--ground", type=float, default=0.0, help="Ground height")
    parser.add_argument(
        "--restitution", type=float, default=0.9, help="Constant of restitution"
    )
    parser.add_argument("--steps", type=int, default=100, help="Number of steps")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in Mode],
        default=Mode.NEWTON.value,
        help="Update strategy",
    )
    parser.add_argument(
        "--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"]
    )
    parser.add_argument("--log-file", type=str, help="Also write logs to this file")


def run_forward(args):
    """Run a cloth simulation."""
    config = SimConfig(
        width=args.width,
        height=args.height,
        space_delta=args.space_delta,
        mass=args.mass,
        spring_constant=args.k,
        cloth_height=args.cloth_height,
        use_diagonals=args.diagonals,
        timestep=args.dt,
        gravity=args.g,
        air_resistance=args.air_resistance,
        ground_height=args.ground,
        constant_of_restitution=args.restitution,
        steps=args.steps,
        mode=Mode(args.mode),
    )
    logger.info(
        "Config: %dx%d grid, k=%g, mode=%s", config.width, config.height,
        config.spring_constant, config.mode.value,
    )
    logger.info("Steps: %d, dt=%g, device=%s", config.steps, config.timestep, config.device)

    simulator = Simulator.from_config(config)
    trajectory = simulator.run(record=True)
    logger.info("Trajectory shape: %s", trajectory.shape)

    if args.save:
        save_trajectory(trajectory, args.save)

    if args.animate:
        animate_particles(trajectory, save_path=args.animation_path)
        logger.info("Animation saved to %s", args.animation_path)

    if args.plot:
        import matplotlib.pyplot as plt

        plot_trajectories(trajectory)
        plt.savefig(args.plot_path)
        logger.info("Trajectory plot saved to %s", args.plot_path)

    return trajectory


def run_spring(args):
    """Hang a single spring from a fixed point and report where it settles."""
    config = SimConfig(
        timestep=args.dt,
        gravity=args.g,
        air_resistance=args.air_resistance,
        ground_height=args.ground,
        constant_of_restitution=args.restitution,
        steps=args.steps,
        mode=Mode(args.mode),
    )
    simulator = Simulator(
        [0, 0, 0, args.length, 0, 0],
        lambda index: index == 0,
        [(0, 1)],
        [args.mass, args.mass],
        [args.length],
        [args.k],
        config,
    )
    trajectory = simulator.run(record=True)
    end = trajectory[-1, 1]
    logger.info("End point settled at (%.4f, %.4f, %.4f)", *end)
    return trajectory


def main():
    parser = argparse.ArgumentParser(description="Mass-spring cloth solver")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # --- Cloth grid ---
    fwd_parser = subparsers.add_parser("forward", help="Run a cloth simulation")
    fwd_parser.add_argument("--width", type=int, default=8, help="Grid width")
    fwd_parser.add_argument("--height", type=int, default=8, help="Grid height")
    fwd_parser.add_argument("--space-delta", type=float, default=1.0, help="Particle spacing")
    fwd_parser.add_argument("--mass", type=float, default=1.0, help="Particle mass")
    fwd_parser.add_argument("--k", type=float, default=10.0, help="Spring constant")
    fwd_parser.add_argument(
        "--cloth-height", type=float, default=40.0, help="Initial height of the cloth"
    )
    fwd_parser.add_argument("--diagonals", action="store_true", help="Use diagonal springs")
    add_physics_arguments(fwd_parser)

    fwd_parser.add_argument("--save", type=str, help="Save trajectory to file")
    fwd_parser.add_argument("--animate", action="store_true", help="Create animation")
    fwd_parser.add_argument(
        "--animation-path", type=str, default="cloth_animation.mp4", help="Animation output path"
    )
    fwd_parser.add_argument("--plot", action="store_true", help="Plot particle trajectories")
    fwd_parser.add_argument(
        "--plot-path", type=str, default="trajectories.png", help="Plot output path"
    )

    # --- Single spring ---
    spring_parser = subparsers.add_parser("spring", help="Hang a single spring")
    spring_parser.add_argument("--length", type=float, default=5.0, help="Rest length")
    spring_parser.add_argument("--mass", type=float, default=1.0, help="Point mass")
    spring_parser.add_argument("--k", type=float, default=1.0, help="Spring constant")
    add_physics_arguments(spring_parser)
    spring_parser.set_defaults(ground=-100.0, air_resistance=0.15)

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        sys.exit(1)

    setup_logging(getattr(logging, args.log_level), args.log_file)

    if args.command == "forward":
        run_forward(args)
    elif args.command == "spring":
        run_spring(args)


if __name__ == "__main__":
    main()
