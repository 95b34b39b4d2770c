"""
Pipeline configuration management.

Provides dataclass-based configuration with validation and serialization.
String-valued method options are resolved into enums once, at construction,
and every out-of-range value is rejected before any computation starts.
"""

from __future__ import annotations

import json
import math
import os
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from scorpion_pipeline.core.errors import InvalidConfiguration


MAX_ITERATIONS = 10000
"""Hard iteration cap applied when ``n_iter`` is unbounded."""

NETWORK_NAMES = ("regulatory", "coregulatory", "cooperative")


class AssocMethod(str, Enum):
    """Gene-gene association estimators."""

    PEARSON = "pearson"
    SPEARMAN = "spearman"
    PCNET = "pcnet"

    @classmethod
    def parse(cls, value: Union[str, "AssocMethod"]) -> "AssocMethod":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidConfiguration(
                f"Unknown association method: {value!r}. "
                f"Must be one of {[m.value for m in cls]}"
            ) from None


class RandomizationMethod(str, Enum):
    """Null-model randomization applied to the expression matrix."""

    NONE = "none"
    WITHIN_GENE = "within.gene"
    BY_GENES = "by.genes"

    @classmethod
    def parse(
        cls, value: Union[str, None, "RandomizationMethod"]
    ) -> "RandomizationMethod":
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.NONE
        key = str(value).strip().lower().replace("_", ".")
        try:
            return cls(key)
        except ValueError:
            raise InvalidConfiguration(
                f"Unknown randomization method: {value!r}. "
                f"Must be one of ['None', 'within.gene', 'by.genes']"
            ) from None


@dataclass
class SuperCellConfig:
    """Super-cell aggregation configuration."""

    gamma: float = 10.0
    """Graining level: number of single cells per super-cell."""

    n_pc: int = 25
    """Number of principal components for the kNN graph."""

    k_knn: int = 5
    """Number of nearest neighbours per cell."""

    n_var_genes: int = 1000
    """Number of most variable genes used for the embedding."""

    do_scale: bool = True
    """Standardize genes before PCA."""

    aggregation: str = "mean"
    """How member cells are combined ("mean" or "sum")."""

    def validate(self) -> None:
        if not (isinstance(self.gamma, (int, float)) and self.gamma > 0):
            raise InvalidConfiguration(f"gamma must be > 0, got {self.gamma!r}")
        if int(self.n_pc) <= 0:
            raise InvalidConfiguration(f"n_pc must be > 0, got {self.n_pc!r}")
        if int(self.k_knn) <= 0:
            raise InvalidConfiguration(f"k_knn must be > 0, got {self.k_knn!r}")
        if int(self.n_var_genes) <= 0:
            raise InvalidConfiguration(
                f"n_var_genes must be > 0, got {self.n_var_genes!r}"
            )
        if self.aggregation not in ("mean", "sum"):
            raise InvalidConfiguration(
                f"aggregation must be 'mean' or 'sum', got {self.aggregation!r}"
            )


@dataclass
class AssociationConfig:
    """Gene association network configuration."""

    method: AssocMethod = AssocMethod.PEARSON
    """Association estimator."""

    scale_by_present: bool = False
    """Scale scores by the fraction of super-cells where both genes are nonzero."""

    n_comp: int = 3
    """Number of principal components per gene for pcNet."""

    def validate(self) -> None:
        self.method = AssocMethod.parse(self.method)
        if int(self.n_comp) <= 0:
            raise InvalidConfiguration(f"n_comp must be > 0, got {self.n_comp!r}")


@dataclass
class PandaConfig:
    """PANDA solver configuration."""

    alpha: float = 0.9
    """Retention weight: R_new = alpha * R_old + (1 - alpha) * message."""

    hamming: float = 0.001
    """Convergence threshold on the mean absolute change of R."""

    n_iter: Optional[float] = None
    """Maximum number of iterations; None or inf means unbounded."""

    def validate(self) -> None:
        if not (0 < self.alpha <= 1):
            raise InvalidConfiguration(f"alpha must be in (0, 1], got {self.alpha!r}")
        if not self.hamming > 0:
            raise InvalidConfiguration(f"hamming must be > 0, got {self.hamming!r}")
        if self.n_iter is not None and not math.isinf(self.n_iter):
            if self.n_iter < 1 or int(self.n_iter) != self.n_iter:
                raise InvalidConfiguration(
                    f"n_iter must be a positive integer or inf, got {self.n_iter!r}"
                )

    @property
    def max_iterations(self) -> int:
        """Effective iteration cap, never unbounded."""
        if self.n_iter is None or math.isinf(self.n_iter):
            return MAX_ITERATIONS
        return int(self.n_iter)

    @property
    def is_unbounded(self) -> bool:
        return self.n_iter is None or math.isinf(self.n_iter)


@dataclass
class OutputConfig:
    """Output selection and rescaling."""

    networks: tuple[str, ...] = NETWORK_NAMES
    """Networks to return."""

    z_scaling: bool = True
    """Z-score outputs; False rescales to [0, 1]."""

    def validate(self) -> None:
        if isinstance(self.networks, str):
            self.networks = (self.networks,)
        networks = tuple(str(n).lower() for n in self.networks)
        unknown = [n for n in networks if n not in NETWORK_NAMES]
        if unknown:
            raise InvalidConfiguration(
                f"Unknown output networks: {unknown}. Must be a subset of {list(NETWORK_NAMES)}"
            )
        if not networks:
            raise InvalidConfiguration("At least one output network must be requested")
        self.networks = networks


# camelCase option names used by the R interface
_ALIASES = {
    "nCores": "n_cores",
    "gammaValue": "gamma_value",
    "nPC": "n_pc",
    "assocMethod": "assoc_method",
    "alphaValue": "alpha_value",
    "hammingValue": "hamming_value",
    "nIter": "n_iter",
    "outNet": "out_net",
    "zScaling": "z_scaling",
    "showProgress": "show_progress",
    "randomizationMethod": "randomization_method",
    "scaleByPresent": "scale_by_present",
    "filterExpr": "filter_expr",
}

# sub-config field -> ScorpionConfig shortcut
_SHORTCUTS = {
    "supercell": {
        "gamma": "gamma_value",
        "n_pc": "n_pc",
        "k_knn": "k_knn",
        "n_var_genes": "n_var_genes",
        "aggregation": "aggregation",
    },
    "association": {
        "method": "assoc_method",
        "scale_by_present": "scale_by_present",
    },
    "panda": {
        "alpha": "alpha_value",
        "hamming": "hamming_value",
        "n_iter": "n_iter",
    },
    "output": {
        "networks": "out_net",
        "z_scaling": "z_scaling",
    },
}


@dataclass
class ScorpionConfig:
    """
    Main pipeline configuration.

    Shortcut fields mirror the options of the ``scorpion()`` entry point and
    override the matching sub-config values.

    Example:
        >>> config = ScorpionConfig(gamma_value=10, alpha_value=0.8)
        >>> pipeline = Pipeline(config)
    """

    n_cores: int = 1
    """Threads available to BLAS and the neighbour search."""

    gamma_value: float = 10.0
    """Graining level of the data (cells per super-cell)."""

    n_pc: int = 25
    """Principal components for the single-cell kNN network."""

    assoc_method: Union[str, AssocMethod] = AssocMethod.PEARSON
    """Association method: 'pearson', 'spearman' or 'pcNet'."""

    alpha_value: float = 0.9
    """Retention weight of the PANDA update."""

    hamming_value: float = 0.001
    """Convergence threshold."""

    n_iter: Optional[float] = None
    """Maximum PANDA iterations (None or inf for unbounded)."""

    out_net: tuple[str, ...] = NETWORK_NAMES
    """Networks to return."""

    z_scaling: bool = True
    """Z-score outputs; False rescales to [0, 1]."""

    show_progress: bool = True
    """Report phase markers and per-iteration status."""

    randomization_method: Union[str, None, RandomizationMethod] = RandomizationMethod.NONE
    """Null-model randomization of the expression matrix."""

    scale_by_present: bool = False
    """Scale associations by joint presence."""

    filter_expr: bool = False
    """Drop genes with zero expression across all cells."""

    seed: int = 12345
    """Random seed for PCA and randomization."""

    use_gpu: bool = False
    """Run PANDA matrix products on a CuPy device when available."""

    k_knn: int = 5
    """Neighbours per cell in the kNN graph."""

    n_var_genes: int = 1000
    """Most variable genes used for the cell embedding."""

    aggregation: str = "mean"
    """How member cells are combined into a super-cell ("mean" or "sum")."""

    # Sub-configurations
    supercell: SuperCellConfig = field(default_factory=SuperCellConfig)
    association: AssociationConfig = field(default_factory=AssociationConfig)
    panda: PandaConfig = field(default_factory=PandaConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def __post_init__(self):
        """Synchronize shortcut values with sub-configs and validate."""
        self.supercell.gamma = self.gamma_value
        self.supercell.n_pc = self.n_pc
        self.supercell.k_knn = self.k_knn
        self.supercell.n_var_genes = self.n_var_genes
        self.supercell.aggregation = self.aggregation

        self.association.method = self.assoc_method
        self.association.scale_by_present = self.scale_by_present

        self.panda.alpha = self.alpha_value
        self.panda.hamming = self.hamming_value
        self.panda.n_iter = self.n_iter

        self.output.networks = self.out_net
        self.output.z_scaling = self.z_scaling

        self.validate()

    def validate(self) -> None:
        """Check every option, resolving method names into enums."""
        if int(self.n_cores) < 1:
            raise InvalidConfiguration(f"n_cores must be >= 1, got {self.n_cores!r}")
        self.assoc_method = AssocMethod.parse(self.assoc_method)
        self.randomization_method = RandomizationMethod.parse(self.randomization_method)
        self.supercell.validate()
        self.association.validate()
        self.panda.validate()
        self.output.validate()
        self.out_net = self.output.networks

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        d = asdict(self)
        for key, value in d.items():
            if isinstance(value, Enum):
                d[key] = value.value
            elif isinstance(value, tuple):
                d[key] = list(value)
            elif isinstance(value, dict):
                for k, v in value.items():
                    if isinstance(v, Enum):
                        d[key][k] = v.value
                    elif isinstance(v, tuple):
                        d[key][k] = list(v)
        if d["n_iter"] is not None and math.isinf(d["n_iter"]):
            d["n_iter"] = None
        if d["panda"]["n_iter"] is not None and math.isinf(d["panda"]["n_iter"]):
            d["panda"]["n_iter"] = None
        return d

    def to_json(self, path: Path | str) -> None:
        """Save configuration to JSON file."""
        path = Path(path)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "ScorpionConfig":
        """Create from dictionary, accepting camelCase option names."""
        d = {_ALIASES.get(k, k): v for k, v in d.items()}
        # Nested values become shortcut values unless the shortcut is given
        for section, fields in _SHORTCUTS.items():
            nested = d.get(section)
            if isinstance(nested, dict):
                for nested_key, shortcut in fields.items():
                    if nested_key in nested and shortcut not in d:
                        d[shortcut] = nested[nested_key]
        # Handle nested configs
        if "supercell" in d and isinstance(d["supercell"], dict):
            d["supercell"] = SuperCellConfig(**d["supercell"])
        if "association" in d and isinstance(d["association"], dict):
            d["association"] = AssociationConfig(**d["association"])
        if "panda" in d and isinstance(d["panda"], dict):
            d["panda"] = PandaConfig(**d["panda"])
        if "output" in d and isinstance(d["output"], dict):
            out = dict(d["output"])
            if "networks" in out:
                out["networks"] = tuple(out["networks"])
            d["output"] = OutputConfig(**out)
        if "out_net" in d:
            out_net = d["out_net"]
            d["out_net"] = (out_net,) if isinstance(out_net, str) else tuple(out_net)
        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(d) - known)
        if unknown:
            raise InvalidConfiguration(f"Unknown configuration options: {unknown}")
        return cls(**d)

    @classmethod
    def from_json(cls, path: Path | str) -> "ScorpionConfig":
        """Load configuration from JSON file."""
        path = Path(path)
        with open(path) as f:
            d = json.load(f)
        return cls.from_dict(d)

    @classmethod
    def from_yaml(cls, path: Path | str) -> "ScorpionConfig":
        """Load configuration from a YAML file (top-level or under ``config:``)."""
        import yaml

        path = Path(path)
        with open(path) as f:
            d = yaml.safe_load(f) or {}
        if "config" in d and isinstance(d["config"], dict):
            d = d["config"]
        return cls.from_dict(d)

    @classmethod
    def from_env(cls) -> "ScorpionConfig":
        """Create configuration from environment variables."""
        n_iter = os.getenv("SCORPION_N_ITER")
        return cls(
            n_cores=int(os.getenv("SCORPION_N_CORES", "1")),
            gamma_value=float(os.getenv("SCORPION_GAMMA", "10")),
            n_pc=int(os.getenv("SCORPION_N_PC", "25")),
            assoc_method=os.getenv("SCORPION_ASSOC_METHOD", "pearson"),
            alpha_value=float(os.getenv("SCORPION_ALPHA", "0.9")),
            hamming_value=float(os.getenv("SCORPION_HAMMING", "0.001")),
            n_iter=float(n_iter) if n_iter else None,
            seed=int(os.getenv("SCORPION_SEED", "12345")),
            show_progress=os.getenv("SCORPION_QUIET", "").lower() not in ("1", "true", "yes"),
        )
