# gennuser

Tools for preparing and driving example spiking-network projects: a
mushroom-body olfaction model, a single Izhikevich population, a
Poisson-to-Izhikevich network and a synaptic-delay network.

## What is in the package

- `gennuser.synapse_gen`: random input rate patterns grouped into classes
  (`structured_input_patterns`), PN→KC, KC→DN and PN→LHI conductance
  matrices (`pnkc_weights`, `kcdn_weights`, `pnlhi_weights`), bit-packed
  PN→KC masks (`pnkc_bitmask`) and sparse row-compressed connectivity
  (`sparse_synapses`, returning a `SparseConnectivity` with `to_dense`).
  `write_doubles`, `write_uint32` and `write_sparse` store results as raw
  binary files in native byte order.
- `gennuser.izh_network`: a network in which every neuron projects to exactly
  `n_conn` targets chosen by reservoir sampling (`izh_network`), split into
  the exc-exc, exc-inh, inh-exc and inh-inh projections
  (`IzhNetwork.projections`) and written with `write_izh_network`.
- `gennuser.tools_cli`: the `gennuser-tools` command over the generators above.
- `gennuser.generate_run`: the `gennuser-run` command, which writes the
  population size header, builds a model, generates its connectivity and
  starts its simulator. Helpers such as `mbody_derived`,
  `mbody_sizes_header`, `build_command` and `sim_command` are usable on
  their own; a failing step raises `CommandFailed`.
- `gennuser.models`: `ModelDescription` objects for each example model
  (`mbody_userdef_model`, `syndelay_model`, `onecomp_model`,
  `poisson_izh_model`), with neuron and synapse populations, parameters and
  initial values, and the learning synapse's derived parameters
  (`stdp_derived_parameters`).
- `gennuser.classol` and `gennuser.recording`: reading conductance, sparse
  projection and input files, dense-to-sparse conversion with the reverse
  (post-to-pre) index, raw conductances of the learning synapse
  (`graw_from_g`), the input pattern schedule (`PatternSchedule`), spike
  totals (`SpikeCounts`), sinusoidal input currents, a simulation clock
  (`SimClock`) and the text formats of state, input and spike lines.

## Installation

```
pip install .
```

Requires Python 3.10 or later and numpy.

## Generating connectivity

```
gennuser-tools --help
gennuser-tools pnlhi-syns 100 20 14.0 15 pnlhi.bin
gennuser-tools syns-sparse 100 10 0.5 0.02 0.001 gPoissonIzh --seed 1234
```

Subcommands: `input-structured`, `kcdn-syns`, `pnkc-syns`,
`pnkc-syns-individ`, `pnlhi-syns`, `syns-sparse` and `syns-sparse-izh`.
Every subcommand takes an optional `--seed`. The echoed call goes to
standard error; `syns-sparse` and `syns-sparse-izh` print the sizes of what
they wrote. Invalid arguments give exit status 1.

## Running an example project

```
gennuser-run mbody <which> <nAL> <nMB> <nLHI> <nLB> <gscale> <outname> <model name> <debug 0/1> <FLOAT|DOUBLE> [<reuse connectivity 0/1>]
gennuser-run onecomp <which> <nC1> <outname> <model name> <debug 0/1>
gennuser-run poisson-izh <which> <nPoisson> <nIzh> <pConn> <gscale> <outname> <model name> <debug 0/1>
```

The project root is taken from the `GENN_PATH` environment variable and the
size header is written to `$GENN_PATH/userproject/include/sizes.h`. The
command is run from the project directory: it runs
`cd model && buildmodel.sh <model name> <debug> && make clean && make ...`
(`buildmodel.bat` and `nmake` on Windows), creates `<outname>_output`,
generates the connectivity files into it and starts `model/<simulator>`
(under `cuda-gdb`, or `devenv` on Windows, in debug mode). The exit status
is 0 on success and 1 as soon as any step fails.

## Library use

```python
import numpy as np
from gennuser.synapse_gen import sparse_synapses, write_sparse, pnlhi_weights

rng = np.random.default_rng(1234)

conn = sparse_synapses(100, 10, 0.5, 0.02, 0.001, rng)
write_sparse("gPoissonIzh", conn, conn.to_dense(10))

weights = pnlhi_weights(100, 20, 14.0, 15.0)
```

```python
from gennuser.generate_run import mbody_derived, mbody_sizes_header

derived = mbody_derived(100, 1000, 1.0)
print(mbody_sizes_header(100, 1000, 20, 100, "float"))
```

```python
from gennuser.models import mbody_userdef_model

model = mbody_userdef_model(100, 1000, 20, 100)
kc = model.population("KC")
```

## What the package does not do

It does not simulate the networks and does not generate or compile
simulator code. `gennuser.models` only describes the models, and
`gennuser.classol` and `gennuser.recording` only provide the file, schedule
and output helpers around a simulation. `gennuser-run` relies on the build
scripts, makefiles and compiled simulators of the example project being
present; it does not provide them.

## Running the tests

```
pip install .[test]
pytest
```