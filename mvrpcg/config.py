"""
Configuration module for mvrpcg.

This module provides configuration management for the library: logging,
LP/MIP solver settings and numerical tolerances.

Configuration can be set via:
1. Environment variables (MVRPCG_*)
2. Config file (~/.mvrpcg/config.toml or ./mvrpcg.toml)
3. Programmatic API

Example:
    >>> from mvrpcg.config import config, setup_logging
    >>> config.solver_threads = 4
    >>> config.set_tolerance("reduced_cost", 1e-7)
    >>> setup_logging("DEBUG")
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or not value.strip().isdigit():
        return default
    return int(value)


@dataclass
class MVRPConfig:
    """
    Configuration for the mvrpcg library.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        solver_threads: Worker threads of the LP/MIP solver (0 = solver default)
        solver_verbosity: Solver output level (0 = silent)
        solver_time_limit: Time limit per LP/MIP solve in seconds (None = no limit)
        tolerances: Numerical tolerances
    """

    # Logging
    log_level: str = field(
        default_factory=lambda: os.environ.get('MVRPCG_LOG_LEVEL', 'INFO')
    )

    # Solver settings
    solver_threads: int = field(
        default_factory=lambda: _env_int('MVRPCG_SOLVER_THREADS', 0)
    )
    solver_verbosity: int = 0
    solver_time_limit: Optional[float] = None

    # Numerical tolerances
    tolerances: dict[str, float] = field(default_factory=lambda: {
        "reduced_cost": 1e-6,
        "integrality": 1e-5,
        "feasibility": 1e-6,
    })

    # =========================================================================
    # Tolerance helpers
    # =========================================================================

    def get_tolerance(self, name: str) -> float:
        """Get a tolerance value by name."""
        return self.tolerances.get(name, 1e-6)

    def set_tolerance(self, name: str, value: float) -> None:
        """Set a tolerance value."""
        self.tolerances[name] = value

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "log_level": self.log_level,
            "solver_threads": self.solver_threads,
            "solver_verbosity": self.solver_verbosity,
            "solver_time_limit": self.solver_time_limit,
            "tolerances": self.tolerances.copy(),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> 'MVRPConfig':
        """Create config from dictionary."""
        defaults = cls()
        tolerances = defaults.tolerances
        tolerances.update(d.get("tolerances", {}))
        time_limit = d.get("solver_time_limit")
        return cls(
            log_level=d.get("log_level", defaults.log_level),
            solver_threads=int(d.get("solver_threads", defaults.solver_threads)),
            solver_verbosity=int(d.get("solver_verbosity", 0)),
            solver_time_limit=float(time_limit) if time_limit not in (None, "") else None,
            tolerances=tolerances,
        )

    def save(self, path: Optional[Path] = None) -> None:
        """
        Save configuration to a TOML file.

        Args:
            path: Path to save to (default: ./mvrpcg.toml)
        """
        if path is None:
            path = Path("mvrpcg.toml")

        lines = [
            "# mvrpcg Configuration",
            "",
            "[general]",
            f'log_level = "{self.log_level}"',
            "",
            "[solver]",
            f"solver_threads = {self.solver_threads}",
            f"solver_verbosity = {self.solver_verbosity}",
        ]
        if self.solver_time_limit is not None:
            lines.append(f"solver_time_limit = {self.solver_time_limit}")

        lines.extend(["", "[tolerances]"])
        for name, value in self.tolerances.items():
            lines.append(f"{name} = {value}")

        path.write_text("\n".join(lines) + "\n")

    @classmethod
    def load(cls, path: Optional[Path] = None) -> 'MVRPConfig':
        """
        Load configuration from a TOML file.

        Args:
            path: Path to load from (default: ./mvrpcg.toml or ~/.mvrpcg/config.toml)

        Returns:
            Loaded configuration (or default if file not found)
        """
        if path is None:
            local_config = Path("mvrpcg.toml")
            user_config = Path.home() / ".mvrpcg" / "config.toml"

            if local_config.exists():
                path = local_config
            elif user_config.exists():
                path = user_config
            else:
                return cls()

        if not path.exists():
            return cls()

        # Simple TOML-like parsing (flat sections only)
        config_dict: dict[str, Any] = {"tolerances": {}}
        current_section = None

        for line in path.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            if line.startswith("[") and line.endswith("]"):
                current_section = line[1:-1]
                continue

            if "=" in line:
                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip().strip('"')

                if value.isdigit():
                    value = int(value)
                else:
                    try:
                        value = float(value)
                    except ValueError:
                        pass

                if current_section == "tolerances":
                    config_dict["tolerances"][key] = float(value)
                else:
                    config_dict[key] = value

        return cls.from_dict(config_dict)


# Global configuration instance
config = MVRPConfig()


def setup_logging(level: Optional[str] = None, log_file: Optional[Union[str, Path]] = None) -> None:
    """
    Configure logging for applications using mvrpcg.

    Args:
        level: Logging level name (default: config.log_level)
        log_file: Optional file receiving the same records as the console
    """
    level = (level or config.log_level).upper()
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level),
        format=log_format,
        handlers=handlers,
        force=True,
    )
