"""
Configuration models, loading and validation.

The analysis is driven by a small YAML file validated into pydantic
models. Defaults that depend on the analysis channel (reconstruction
strategy and plot frame) are filled in from ``CHANNEL_DEFAULTS`` before
validation, so a file naming only ``channel: dimuon`` is complete.
Everything that can be misconfigured is rejected here, before a single
event is generated.
"""

import logging
from typing import Annotated, Literal, Optional

import yaml
from omegaconf import OmegaConf
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """Raised when the analysis configuration is malformed."""


CHANNEL_DEFAULTS = {
    "dijet": {
        "reconstruction": {"strategy": "jets"},
        "plot": {
            "name": "DijetMassDist",
            "title": "Boson Invariant Mass Distributions",
            "xlabel": "m (GeV)",
        },
    },
    "dimuon": {
        "reconstruction": {"strategy": "leptons"},
        "plot": {
            "name": "DimuonMassDist",
            "title": "Boson dimuon invariant mass distributions",
            "xlabel": "mass (GeV)",
        },
    },
}

# Reconstruction strategy each channel is analysed with.
CHANNEL_STRATEGY = {
    channel: defaults["reconstruction"]["strategy"]
    for channel, defaults in CHANNEL_DEFAULTS.items()
}


class SubscriptableModel(BaseModel):
    """A pydantic model that also supports ``model[key]`` and ``model.get(key)``."""

    model_config = ConfigDict(extra="forbid")

    def __getitem__(self, key):
        return getattr(self, key)

    def __contains__(self, key):
        return key in type(self).model_fields

    def get(self, key, default=None):
        return getattr(self, key, default)


class GeneratorConfig(SubscriptableModel):
    backend: Annotated[
        Literal["pythia", "root"],
        Field(default="pythia", description="Event source: live Pythia 8 or a ROOT file"),
    ]
    ecm: Annotated[
        float, Field(default=13000.0, gt=0.0, description="Centre-of-mass energy [GeV]")
    ]
    seed: Annotated[Optional[int], Field(default=None, description="Pythia random seed")]
    input_file: Annotated[
        Optional[str], Field(default=None, description="ROOT file for the 'root' backend")
    ]
    tree: Annotated[
        Optional[str], Field(default=None, description="TTree name; auto-detected if unset")
    ]

    @model_validator(mode="after")
    def check_input_file(self):
        if self.backend == "root" and not self.input_file:
            raise ValueError("generator.input_file is required for the 'root' backend")
        return self


class ReconstructionConfig(SubscriptableModel):
    strategy: Annotated[
        Literal["jets", "leptons"],
        Field(default="jets", description="Anti-kt jets or the first lepton pair"),
    ]
    radius: Annotated[float, Field(default=0.4, gt=0.0, description="Anti-kt radius R")]
    ptmin: Annotated[float, Field(default=0.0, ge=0.0, description="Minimum jet pT [GeV]")]
    lepton_code: Annotated[
        int, Field(default=13, description="PDG id of the lepton species (sign ignored)")
    ]
    exclude_invisible: Annotated[
        bool, Field(default=False, description="Drop neutrinos before clustering")
    ]

    @field_validator("lepton_code")
    @classmethod
    def check_lepton_code(cls, value):
        if value == 0:
            raise ValueError("lepton_code must be a non-zero PDG id")
        return value


class HistConfig(SubscriptableModel):
    nbins: Annotated[int, Field(default=100, gt=0, description="Number of bins")]
    min: Annotated[float, Field(default=0.0, description="Lower edge [GeV]")]
    max: Annotated[float, Field(default=100.0, description="Upper edge (exclusive) [GeV]")]

    @model_validator(mode="after")
    def check_range(self):
        if self.max <= self.min:
            raise ValueError(f"hist.max ({self.max}) must be greater than hist.min ({self.min})")
        return self


class PlotConfig(SubscriptableModel):
    name: str = "DijetMassDist"
    title: str = "Boson Invariant Mass Distributions"
    xlabel: str = "m (GeV)"
    ylabel: str = "events/bin"
    style: Literal["h", "e", "l"] = "h"
    color: str = "indigo"
    log_y: bool = True
    log_x: bool = False


class AnalysisConfig(SubscriptableModel):
    """Top-level configuration of one analysis run."""

    channel: Annotated[
        Literal["dijet", "dimuon"], Field(default="dijet", description="Boson decay channel")
    ]
    n_events: Annotated[int, Field(default=100000, ge=0, description="Generator calls")]
    progress_every: Annotated[
        int, Field(default=10000, ge=0, description="Progress log interval (0 disables)")
    ]
    output_dir: Annotated[str, Field(default="output", description="Export directory")]
    generator: Annotated[GeneratorConfig, Field(default_factory=GeneratorConfig)]
    reconstruction: Annotated[ReconstructionConfig, Field(default_factory=ReconstructionConfig)]
    hist: Annotated[HistConfig, Field(default_factory=HistConfig)]
    plot: Annotated[PlotConfig, Field(default_factory=PlotConfig)]

    @model_validator(mode="before")
    @classmethod
    def apply_channel_defaults(cls, data):
        if not isinstance(data, dict):
            return data
        defaults = CHANNEL_DEFAULTS.get(data.get("channel", "dijet"))
        if defaults is None:
            return data
        data = dict(data)
        for section, values in defaults.items():
            given = data.get(section)
            if given is None:
                data[section] = dict(values)
            elif isinstance(given, dict):
                data[section] = {**values, **given}
        return data

    @model_validator(mode="after")
    def check_channel_strategy(self):
        expected = CHANNEL_STRATEGY[self.channel]
        if self.reconstruction.strategy != expected:
            raise ValueError(
                f"Channel {self.channel!r} is reconstructed with {expected!r}, "
                f"not {self.reconstruction.strategy!r}"
            )
        return self


def validate_config(raw):
    """
    Validate a configuration mapping into an ``AnalysisConfig``.

    Raises
    ------
    ConfigurationError
        If any value is missing, out of range or of the wrong kind.
    """
    if isinstance(raw, AnalysisConfig):
        return raw
    try:
        return AnalysisConfig.model_validate(raw)
    except ValidationError as err:
        raise ConfigurationError(str(err)) from err


def apply_overrides(raw, dotlist):
    """
    Merge ``key.sub=value`` overrides into a raw configuration mapping.
    """
    if not dotlist:
        return raw
    merged = OmegaConf.merge(OmegaConf.create(raw), OmegaConf.from_dotlist(list(dotlist)))
    return OmegaConf.to_container(merged, resolve=True)


def load_config(path, overrides=()):
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    logger.debug("Loaded configuration from %s", path)
    return validate_config(apply_overrides(raw, overrides))
