# chaosblade-operator

Building blocks of a chaos-experiment operator for Kubernetes-style clusters,
as a plain Python library with no third-party dependencies.

It injects a file-system fault sidecar into annotated pods, serves and
consumes the small HTTP protocol that switches file-system faults on and off,
decides per file-system call whether to delay or fail it, and carries the
helpers behind the "fail pod" and "pod IO" experiments. Pods are handled as
plain dictionaries in the Kubernetes JSON shape.

## Modules

| Module | Purpose |
| --- | --- |
| `chaosblade_operator.version` | `parse_combined_version` splits a `version,product` string; `has_cri_command` tells whether a tool version is at least 1.5.0. |
| `chaosblade_operator.settings` | `OperatorSettings`, `ChaosBladeSettings`, `AliyunSettings`; `OperatorSettings.image_repository()` per product (`community` or `ahas`); `aliyun_image_repository`; `build_operator_parser` and `parse_operator_args`. |
| `chaosblade_operator.fault` | `InjectMessage` (with `to_dict` / `from_dict`) and `FaultStore`, the thread-safe map from file-system method to active fault. |
| `chaosblade_operator.server` | `HookServer`: the `/inject` and `/recover` HTTP endpoints. |
| `chaosblade_operator.client` | `HookClient`: `inject_fault` and `revoke` against a `HookServer`; failures raise `HookClientError`. |
| `chaosblade_operator.hook` | `ChaosbladeHook`: applies the fault for a method to a path, sleeping for the delay and raising `OSError` with the errno; `random_errno`, `probability`. |
| `chaosblade_operator.mutator` | `Mutator`: adds the `chaosblade-fuse` sidecar to annotated pods and answers admission requests with a JSON patch; `WebhookSettings`, `parse_webhook_args`. |
| `chaosblade_operator.podfail` | `is_pod_ready`, `has_annotation`, and `inject_fail_images`, which points every container at a broken image. |
| `chaosblade_operator.podio` | `parse_io_flags` turns experiment flags into an `InjectMessage`; `get_container_port`, `chaosfs_address`; `FlagError`. |

## Examples

Versions and settings:

```python
from chaosblade_operator.version import has_cri_command, parse_combined_version
from chaosblade_operator.settings import aliyun_image_repository, parse_operator_args

has_cri_command("1.5.0")                      # True
has_cri_command("1.4.0")                      # False
parse_combined_version("1.5.0,ahas")          # ("1.5.0", "ahas")

settings = parse_operator_args(["--reconcile-count", "10"])
settings.chaosblade.remove_blade_interval     # "72h"
aliyun_image_repository("cn-hangzhou", "prod")
# "registry-vpc.cn-hangzhou.aliyuncs.com/ahascr/chaosblade-tool"
```

Switching faults on and off over HTTP:

```python
import threading
from chaosblade_operator.client import HookClient
from chaosblade_operator.fault import InjectMessage
from chaosblade_operator.server import HookServer

server = HookServer("127.0.0.1:0")
stop = threading.Event()
threading.Thread(target=server.serve, args=(stop,), daemon=True).start()
server.ready.wait()

host, port = server.bound_address
client = HookClient(f"{host}:{port}")
client.inject_fault(InjectMessage(methods=["read"], errno=5))
server.store.get("read").errno                # 5
client.revoke()
stop.set()
```

Failing a file-system call:

```python
from chaosblade_operator.fault import FaultStore, InjectMessage
from chaosblade_operator.hook import ChaosbladeHook

store = FaultStore()
store.inject(InjectMessage(methods=["write"], path="/data", errno=28))
hook = ChaosbladeHook(mount_point="/data", store=store)
hook.pre("write", "log.txt")                  # raises OSError(28, ...)
hook.pre("read", "log.txt")                   # no fault for read: returns None
```

## Sidecar injection

A pod opts in with two annotations:

- `chaosblade/inject-volume`: the name of a volume mount of the first
  container, whose `mountPropagation` is `HostToContainer` or `Bidirectional`;
- `chaosblade/inject-volume-subpath`: the sub-path inside that mount.

`Mutator.mutate_pod` then replaces the container list with a privileged
`chaosblade-fuse` sidecar followed by the first container. The sidecar runs
`/opt/chaosblade/bin/chaos_fuse` with `--address`, `--mountpoint` and
`--original`, and exposes the port named `fuse-port` (65534 unless
`--fuse-server-port` says otherwise). A missing or unsupported mount
propagation, or a missing volume mount, raises `MutationError`;
`Mutator.handle` turns that into a refused admission response.

## What this package does not do

It has no model of experiment resources, no reconciliation loop or watch-event
filtering, no clean-up of stuck experiments and no deployment of the
chaosblade tool to nodes. It does not talk to a cluster API server, mount a
FUSE file system or serve admission requests over HTTPS: `ChaosbladeHook` and
`Mutator.handle` are the decisions, to be wired into such a host by the caller.
It installs no command-line program; the argument parsers are there to be
called from one.

## Tests

The test suite uses pytest, available through the `test` extra.