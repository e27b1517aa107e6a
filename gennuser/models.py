"""Descriptions of the example network models: populations, synapses and settings.

A :class:`ModelDescription` records what the code generator needs to know about
a model. This covers its neuron and synapse populations with their parameter
and initial values, the integration time step, the precision, the random seed
and the user-defined model kinds it relies on.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Optional, Sequence, Union

__all__ = [
    "NO_DELAY",
    "SYNDELAY_TOTAL_TIME",
    "SYNDELAY_REPORT_TIME",
    "NeuronPopulation",
    "SynapsePopulation",
    "ModelDescription",
    "STDPDerived",
    "stdp_derived_parameters",
    "mbody_userdef_model",
    "syndelay_model",
    "onecomp_model",
    "poisson_izh_model",
]

NO_DELAY = 0

SYNDELAY_TOTAL_TIME = 5000.0
SYNDELAY_REPORT_TIME = 1000.0

_IZH_TONIC_PARAMS = (0.02, 0.2, -65.0, 6.0)
_IZH_TONIC_INITIAL = (-65.0, -20.0)
_POST_EXP_DEFAULT = (1.0, 0.0)


@dataclass
class NeuronPopulation:
    """A group of identical neurons."""

    name: str
    size: int
    neuron_type: str
    params: tuple[float, ...]
    initial: tuple[float, ...]
    const_input: Optional[float] = None


@dataclass
class SynapsePopulation:
    """A projection between two neuron populations."""

    name: str
    weight_update: str
    connectivity: str
    g_type: str
    delay: int
    post_syn: str
    source: str
    target: str
    initial: tuple[float, ...]
    params: tuple[float, ...] = ()
    post_syn_initial: tuple[float, ...] = ()
    post_syn_params: tuple[float, ...] = ()
    derived_params: tuple[float, ...] = ()
    max_conn: Optional[int] = None


@dataclass(frozen=True)
class _CustomModel:
    var_names: tuple[str, ...] = ()
    var_types: tuple[str, ...] = ()
    param_names: tuple[str, ...] = ()
    derived_param_names: tuple[str, ...] = ()
    needs_pre_spike_time: bool = False
    needs_post_spike_time: bool = False


@dataclass
class ModelDescription:
    """A named network model with its populations and global settings."""

    name: str
    dt: float
    precision: str = "FLOAT"
    seed: Optional[int] = None
    gpu_device: Optional[int] = None
    timing: bool = False
    neurons: dict[str, NeuronPopulation] = field(default_factory=dict)
    synapses: dict[str, SynapsePopulation] = field(default_factory=dict)
    custom_models: dict[str, _CustomModel] = field(default_factory=dict)

    def _check_new_name(self, name: str) -> None:
        if name in self.neurons or name in self.synapses:
            raise ValueError(f"population {name!r} already exists")

    def add_neurons(self, population: NeuronPopulation) -> NeuronPopulation:
        """Add a neuron population; names must be unique within the model."""
        self._check_new_name(population.name)
        if population.size < 0:
            raise ValueError(f"population {population.name!r} has negative size")
        self.neurons[population.name] = population
        return population

    def add_synapses(self, population: SynapsePopulation) -> SynapsePopulation:
        """Add a synapse population between two neuron populations already added."""
        self._check_new_name(population.name)
        for end in (population.source, population.target):
            if end not in self.neurons:
                raise ValueError(
                    f"synapse population {population.name!r} refers to "
                    f"unknown neuron population {end!r}"
                )
        if population.delay < 0:
            raise ValueError(f"synapse population {population.name!r} has negative delay")
        if population.max_conn is not None and population.max_conn < 0:
            raise ValueError(f"synapse population {population.name!r} has negative max_conn")
        self.synapses[population.name] = population
        return population

    def population(self, name: str) -> Union[NeuronPopulation, SynapsePopulation]:
        """Look up a neuron or synapse population by name."""
        if name in self.neurons:
            return self.neurons[name]
        if name in self.synapses:
            return self.synapses[name]
        raise KeyError(name)

    @property
    def neuron_counts(self) -> list[int]:
        """Sizes of the neuron populations in the order they were added."""
        return [pop.size for pop in self.neurons.values()]

    @property
    def cumulative_neurons(self) -> list[int]:
        """Running totals of the population sizes, used as global neuron offsets."""
        totals: list[int] = []
        running = 0
        for count in self.neuron_counts:
            running += count
            totals.append(running)
        return totals


@dataclass(frozen=True)
class STDPDerived:
    """Derived parameters of the piecewise-linear STDP learning rule."""

    lim0: float
    lim1: float
    slope0: float
    slope1: float
    off0: float
    off1: float
    off2: float

    def as_list(self) -> list[float]:
        """The derived parameters in index order."""
        return [getattr(self, f.name) for f in fields(self)]


def stdp_derived_parameters(pars: Sequence[float]) -> STDPDerived:
    """Compute the STDP derived parameters from the learning synapse parameters.

    Uses ``tLrn`` (index 1), ``tChng`` (2), ``tPunish10`` (4), ``tPunish01`` (5)
    and ``gMax`` (6).
    """
    if len(pars) < 7:
        raise ValueError(f"need at least 7 parameters, got {len(pars)}")
    t_lrn, t_chng = float(pars[1]), float(pars[2])
    t_punish10, t_punish01, g_max = float(pars[4]), float(pars[5]), float(pars[6])
    slope0 = -2.0 * g_max / (t_chng * t_lrn)
    return STDPDerived(
        lim0=(1.0 / t_punish01 + 1.0 / t_chng) * t_lrn / (2.0 / t_chng),
        lim1=-((1.0 / t_punish10 + 1.0 / t_chng) * t_lrn / (2.0 / t_chng)),
        slope0=slope0,
        slope1=-1 * slope0,
        off0=g_max / t_punish01,
        off1=g_max / t_chng,
        off2=g_max / t_punish10,
    )


def _check_sizes(**sizes: int) -> None:
    for name, value in sizes.items():
        if value < 0:
            raise ValueError(f"{name} must not be negative, got {value}")


_LEARN1_PARAMS = (
    -20.0,     # Epre
    50.0,      # tLrn
    50.0,      # tChng
    50000.0,   # tDecay
    100000.0,  # tPunish10
    200.0,     # tPunish01
    0.015,     # gMax
    0.0075,    # gMid
    33.33,     # gSlope
    10.0,      # tauShift
    0.00006,   # gSyn0
)


def _mbody_custom_models() -> dict[str, _CustomModel]:
    return {
        "EXPDECAY_EVAR": _CustomModel(
            var_names=("EEEE",),
            var_types=("scalar",),
            param_names=("tau",),
            derived_param_names=("expDecay",),
        ),
        "NSYNAPSE_userdef": _CustomModel(var_names=("g",), var_types=("scalar",)),
        "NGRADSYNAPSE_userdef": _CustomModel(
            var_names=("g",),
            var_types=("scalar",),
            param_names=("Epre", "Vslope"),
        ),
        "LEARN1SYNAPSE_userdef": _CustomModel(
            var_names=("g", "gRaw"),
            var_types=("scalar", "scalar"),
            param_names=(
                "Epre", "tLrn", "tChng", "tDecay", "tPunish10", "tPunish01",
                "gMax", "gMid", "gSlope", "tauShift", "gSyn0",
            ),
            derived_param_names=(
                "lim0", "lim1", "slope0", "slope1", "off0", "off1", "off2",
            ),
            needs_pre_spike_time=True,
            needs_post_spike_time=True,
        ),
    }


def mbody_userdef_model(n_al: int, n_mb: int, n_lhi: int, n_lb: int) -> ModelDescription:
    """Mushroom body model built from user-defined synapse models."""
    _check_sizes(n_al=n_al, n_mb=n_mb)
    if n_lhi <= 0 or n_lb <= 0:
        raise ValueError("n_lhi and n_lb must be positive")
    model = ModelDescription(
        name="MBody_userdef", dt=0.1, seed=1234, gpu_device=0, timing=False,
        custom_models=_mbody_custom_models(),
    )
    poisson_params = (0.1, 2.5, 20.0, -60.0)
    poisson_initial = (-60.0, 0.0, -10.0)
    tm_params = (7.15, 50.0, 1.43, -95.0, 0.02672, -63.563, 0.143)
    tm_initial = (-60.0, 0.0529324, 0.3176767, 0.5961207)

    model.add_neurons(NeuronPopulation("PN", n_al, "POISSONNEURON", poisson_params, poisson_initial))
    for name, size in (("KC", n_mb), ("LHI", n_lhi), ("DN", n_lb)):
        model.add_neurons(NeuronPopulation(name, size, "TRAUBMILES_FAST", tm_params, tm_initial))

    model.add_synapses(SynapsePopulation(
        "PNKC", "NSYNAPSE_userdef", "SPARSE", "INDIVIDUALG", NO_DELAY, "EXPDECAY_EVAR",
        "PN", "KC", initial=(0.01,), post_syn_initial=(0.0,),
        post_syn_params=(1.0, 0.0), max_conn=n_mb,
    ))
    model.add_synapses(SynapsePopulation(
        "PNLHI", "NSYNAPSE_userdef", "ALLTOALL", "INDIVIDUALG", NO_DELAY, "EXPDECAY",
        "PN", "LHI", initial=(0.0,), post_syn_params=(1.0, 0.0),
    ))
    model.add_synapses(SynapsePopulation(
        "LHIKC", "NGRADSYNAPSE_userdef", "ALLTOALL", "GLOBALG", NO_DELAY, "EXPDECAY",
        "LHI", "KC", initial=(0.35 / n_lhi,), params=(-40.0, 50.0),
        post_syn_params=(1.5, -92.0),
    ))
    model.add_synapses(SynapsePopulation(
        "KCDN", "LEARN1SYNAPSE_userdef", "SPARSE", "INDIVIDUALG", NO_DELAY, "EXPDECAY",
        "KC", "DN", initial=(0.01, 0.01), params=_LEARN1_PARAMS,
        post_syn_params=(5.0, 0.0),
        derived_params=tuple(stdp_derived_parameters(_LEARN1_PARAMS).as_list()),
        max_conn=n_lb,
    ))
    model.add_synapses(SynapsePopulation(
        "DNDN", "NGRADSYNAPSE_userdef", "ALLTOALL", "GLOBALG", NO_DELAY, "EXPDECAY",
        "DN", "DN", initial=(5.0 / n_lb,), params=(-30.0, 50.0, 0.0, 0.0),
        post_syn_params=(8.0, -92.0),
    ))
    return model


def syndelay_model() -> ModelDescription:
    """Three Izhikevich populations linked by synapses with different delays."""
    model = ModelDescription(name="SynDelay", dt=1.0)
    model.add_neurons(NeuronPopulation(
        "Input", 500, "IZHIKEVICH", _IZH_TONIC_PARAMS, _IZH_TONIC_INITIAL, const_input=4.0,
    ))
    for name in ("Inter", "Output"):
        model.add_neurons(NeuronPopulation(name, 500, "IZHIKEVICH", _IZH_TONIC_PARAMS, _IZH_TONIC_INITIAL))

    synapse_params = (0.0, -30.0, 1.0)
    for name, delay, source, target, g in (
        ("InputInter", 3, "Input", "Inter", 0.06),
        ("InputOutput", 6, "Input", "Output", 0.03),
        ("InterOutput", NO_DELAY, "Inter", "Output", 0.03),
    ):
        model.add_synapses(SynapsePopulation(
            name, "NSYNAPSE", "DENSE", "GLOBALG", delay, "IZHIKEVICH_PS",
            source, target, initial=(g,), params=synapse_params,
            post_syn_params=_POST_EXP_DEFAULT,
        ))
    return model


def onecomp_model(n_c1: int) -> ModelDescription:
    """A single population of tonic-spiking Izhikevich neurons with constant input."""
    _check_sizes(n_c1=n_c1)
    model = ModelDescription(name="OneComp", dt=1.0, precision="FLOAT", gpu_device=0)
    model.add_neurons(NeuronPopulation(
        "Izh1", n_c1, "IZHIKEVICH", _IZH_TONIC_PARAMS, _IZH_TONIC_INITIAL, const_input=4.0,
    ))
    return model


def poisson_izh_model(n_poisson: int, n_izh: int) -> ModelDescription:
    """Poisson input neurons projecting all-to-all onto Izhikevich neurons."""
    _check_sizes(n_poisson=n_poisson, n_izh=n_izh)
    model = ModelDescription(
        name="PoissonIzh", dt=1.0, precision="FLOAT", seed=1234, gpu_device=0,
    )
    model.add_neurons(NeuronPopulation(
        "PN", n_poisson, "POISSONNEURON", (1.0, 2.5, 20.0, -60.0), (-60.0, 0.0, -10.0, 0.0),
    ))
    model.add_neurons(NeuronPopulation(
        "Izh1", n_izh, "IZHIKEVICH", _IZH_TONIC_PARAMS, _IZH_TONIC_INITIAL,
    ))
    model.add_synapses(SynapsePopulation(
        "PNIzh1", "NSYNAPSE", "ALLTOALL", "INDIVIDUALG", NO_DELAY, "IZHIKEVICH_PS",
        "PN", "Izh1", initial=(0.0,), params=(0.0, -20.0, 1.0),
        post_syn_params=_POST_EXP_DEFAULT,
    ))
    return model