import pytest

from gennuser.models import (
    NO_DELAY,
    ModelDescription,
    NeuronPopulation,
    STDPDerived,
    SynapsePopulation,
    mbody_userdef_model,
    onecomp_model,
    poisson_izh_model,
    stdp_derived_parameters,
    syndelay_model,
)


KCDN_PARAMS = [-20.0, 50.0, 50.0, 50000.0, 100000.0, 200.0, 0.015, 0.0075, 33.33, 10.0, 0.00006]


def test_stdp_slopes_are_opposite():
    d = stdp_derived_parameters(KCDN_PARAMS)
    assert d.slope1 == -d.slope0
    assert d.slope0 < 0


def test_stdp_offsets_scale_with_gmax():
    d = stdp_derived_parameters(KCDN_PARAMS)
    assert d.off0 * KCDN_PARAMS[5] == pytest.approx(KCDN_PARAMS[6])
    assert d.off1 * KCDN_PARAMS[2] == pytest.approx(KCDN_PARAMS[6])
    assert d.off2 * KCDN_PARAMS[4] == pytest.approx(KCDN_PARAMS[6])


def test_stdp_limits_have_expected_signs():
    d = stdp_derived_parameters(KCDN_PARAMS)
    assert d.lim0 > 0
    assert d.lim1 < 0


def test_stdp_as_list_order():
    d = stdp_derived_parameters(KCDN_PARAMS)
    assert d.as_list() == [d.lim0, d.lim1, d.slope0, d.slope1, d.off0, d.off1, d.off2]


def test_stdp_as_list_round_trip():
    d = stdp_derived_parameters(KCDN_PARAMS)
    assert STDPDerived(*d.as_list()) == d


def test_stdp_too_few_parameters():
    with pytest.raises(ValueError):
        stdp_derived_parameters([1.0, 2.0, 3.0])


def test_mbody_population_sizes():
    model = mbody_userdef_model(100, 1000, 20, 100)
    assert model.neuron_counts == [100, 1000, 20, 100]
    assert model.cumulative_neurons == [100, 1100, 1120, 1220]
    assert model.dt == 0.1
    assert model.seed == 1234


def test_mbody_synapses():
    model = mbody_userdef_model(100, 1000, 20, 100)
    assert list(model.synapses) == ["PNKC", "PNLHI", "LHIKC", "KCDN", "DNDN"]
    assert model.population("PNKC").max_conn == 1000
    assert model.population("KCDN").max_conn == 100
    assert model.population("LHIKC").initial[0] * 20 == pytest.approx(0.35)
    assert model.population("DNDN").initial[0] * 100 == pytest.approx(5.0)


def test_mbody_kcdn_derived_matches_rule():
    model = mbody_userdef_model(10, 10, 5, 5)
    kcdn = model.population("KCDN")
    assert list(kcdn.derived_params) == stdp_derived_parameters(kcdn.params).as_list()
    assert len(kcdn.params) == 11
    assert model.custom_models["LEARN1SYNAPSE_userdef"].var_names == ("g", "gRaw")


def test_mbody_rejects_zero_lhi():
    with pytest.raises(ValueError):
        mbody_userdef_model(10, 10, 0, 5)


def test_syndelay_delays():
    model = syndelay_model()
    delays = {name: s.delay for name, s in model.synapses.items()}
    assert delays == {"InputInter": 3, "InputOutput": 6, "InterOutput": NO_DELAY}
    assert model.population("Input").const_input == 4.0
    assert model.population("Inter").const_input is None
    assert model.neuron_counts == [500, 500, 500]


def test_onecomp_model():
    model = onecomp_model(7)
    izh = model.population("Izh1")
    assert izh.size == 7
    assert izh.neuron_type == "IZHIKEVICH"
    assert model.synapses == {}


def test_onecomp_negative_size():
    with pytest.raises(ValueError):
        onecomp_model(-1)


def test_poisson_izh_model():
    model = poisson_izh_model(100, 10)
    syn = model.population("PNIzh1")
    assert (syn.source, syn.target) == ("PN", "Izh1")
    assert syn.connectivity == "ALLTOALL"
    assert model.cumulative_neurons == [100, 110]


def test_duplicate_population_name():
    model = ModelDescription(name="m", dt=1.0)
    model.add_neurons(NeuronPopulation("A", 3, "IZHIKEVICH", (), ()))
    with pytest.raises(ValueError):
        model.add_neurons(NeuronPopulation("A", 4, "IZHIKEVICH", (), ()))


def test_synapse_with_unknown_source():
    model = ModelDescription(name="m", dt=1.0)
    model.add_neurons(NeuronPopulation("A", 3, "IZHIKEVICH", (), ()))
    with pytest.raises(ValueError):
        model.add_synapses(SynapsePopulation(
            "AB", "NSYNAPSE", "DENSE", "GLOBALG", 0, "EXPDECAY", "A", "B", initial=(0.0,),
        ))


def test_negative_delay_rejected():
    model = ModelDescription(name="m", dt=1.0)
    model.add_neurons(NeuronPopulation("A", 3, "IZHIKEVICH", (), ()))
    with pytest.raises(ValueError):
        model.add_synapses(SynapsePopulation(
            "AA", "NSYNAPSE", "DENSE", "GLOBALG", -1, "EXPDECAY", "A", "A", initial=(0.0,),
        ))


def test_unknown_population_lookup():
    model = syndelay_model()
    with pytest.raises(KeyError):
        model.population("Nowhere")