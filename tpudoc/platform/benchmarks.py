###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
JAX micro-benchmarks run in a child interpreter.

Each script prints a single number on its last stdout line. Running them out
of process keeps JAX (and the TPU runtime it grabs) out of the tpu-doc
process.
"""

MXU_UTILIZATION = r"""
import time
import jax.numpy as jnp

x = jnp.ones((4096, 4096))
jnp.dot(x, x).block_until_ready()

start = time.time()
for _ in range(10):
    jnp.dot(x, x).block_until_ready()
elapsed = time.time() - start

# 2*n^3 flops per matmul against a 275 TFLOPS reference peak
flops = (4096 ** 3) * 2 * 10 / elapsed
print(f"{flops / 275e12 * 100:.1f}")
"""

HBM_BANDWIDTH = r"""
import time
import jax.numpy as jnp

size_gb = 1.0
x = jnp.ones(int(size_gb * 1024 ** 3) // 4, dtype=jnp.float32)
(x + 1).block_until_ready()

start = time.time()
for _ in range(10):
    (x + 1).block_until_ready()
elapsed = time.time() - start

# read + write per iteration
print(f"{size_gb * 2 * 10 / elapsed:.1f}")
"""

CHIP_LATENCY = r"""
import sys
import time
import jax
import jax.numpy as jnp

devices = jax.devices()
if len(devices) < 2:
    sys.exit("single device: chip-to-chip latency not applicable")

x = jax.device_put(jnp.ones(1024), devices[0])
start = time.time()
for _ in range(100):
    jax.device_put(x, devices[1]).block_until_ready()
print(f"{(time.time() - start) / 100 * 1e6:.1f}")
"""

COMPILE_TIME = r"""
import time
import jax
import jax.numpy as jnp


@jax.jit
def model(x):
    for _ in range(10):
        x = jnp.tanh(jnp.dot(x, x.T))
    return x


jax.clear_caches()
x = jnp.ones((512, 512))
start = time.time()
model(x).block_until_ready()
print(f"{time.time() - start:.2f}")
"""

MEMORY_PRESSURE = r"""
import jax.numpy as jnp

try:
    arrays = []
    for size_mb in (100, 500, 1000, 2000):
        arr = jnp.ones(size_mb * 1024 * 1024 // 4, dtype=jnp.float32)
        arr.block_until_ready()
        arrays.append(arr)
    del arrays
    jnp.ones(500 * 1024 * 1024 // 4, dtype=jnp.float32).block_until_ready()
    print("1.0")
except Exception:
    print("0.0")
"""

SCRIPTS = {
    "mxu_utilization": MXU_UTILIZATION,
    "hbm_bandwidth": HBM_BANDWIDTH,
    "chip_latency": CHIP_LATENCY,
    "compile_time": COMPILE_TIME,
    "memory_pressure": MEMORY_PRESSURE,
}
