# tarsrpc

Building blocks for services that speak the TARS RPC protocol.

| Module | What it holds |
| --- | --- |
| `tarsrpc.encoder` | `Buffer`, which writes tagged fields; the `TarsType` enum; `get_type_str` |
| `tarsrpc.decoder` | `Reader`, which reads tagged fields; `CodecError` for malformed data |
| `tarsrpc.message` | `Message` (per-call timing and hash routing), `HashType`, and the `PackageProtocol` and `Servant` protocols |
| `tarsrpc.filters` | `Filters`: client and server filters, middleware chains and a dispatch reporter, plus module-level functions on a process-wide registry |
| `tarsrpc.communicator` | `Communicator`: a thread-safe property store with `hash_key` |
| `tarsrpc.appcache` | `AppCache` and `ObjCache`, saved to and loaded from JSON |
| `tarsrpc.admin` | `Admin`: answers `shutdown` and `notify` admin commands |
| `tarsrpc.adapter` | `AdapterHealth` and `HealthPolicy`: decides when an endpoint is blocked and when it is retried |
| `tarsrpc.endpoints` | `EndpointSelector` (round-robin, modulo-hash and consistent-hash selection) and `crc_sorted` |
| `tarsrpc.httpstat` | `StatMiddleware`, a WSGI middleware producing a `StatRecord` per request |

## Install

```
pip install .
```

For the tests, `pip install ".[test]"` and then run `pytest`.

## Codec

```python
from tarsrpc.encoder import Buffer
from tarsrpc.decoder import Reader, CodecError

buf = Buffer()
buf.write_int32(-1, 10)
buf.write_string("hello", 11)

reader = Reader(buf.to_bytes())
assert reader.read_int32(10, True) == -1
assert reader.read_string(11, True) == "hello"
```

Integers are written in the smallest width that holds them, and zero takes
only a head byte. Strings longer than 255 UTF-8 bytes get a 4-byte length.
Writing a value out of range for its type raises `ValueError`.

Every `read_*` method takes `(tag, require=True, default=...)`. A required
tag that is missing raises `CodecError`; an optional one that is missing
returns `default` and leaves the reader before the next field. Fields with a
lower tag are skipped, including nested maps, lists and structs.
`skip_to`, `skip_to_no_check`, `skip_to_struct_end`, `read_head`,
`unread_head`, `next`, `skip`, `read_bytes` and `read_int8_list` give lower
level access.

## Messages and filters

```python
from tarsrpc.message import Message, HashType
from tarsrpc.filters import Filters

msg = Message()
msg.init()
msg.set_hash(42, HashType.MOD_HASH)
msg.end()
print(msg.cost())

filters = Filters()

def logging_middleware(next_filter):
    def wrapped(ctx, msg, invoke, timeout):
        print("calling")
        return next_filter(ctx, msg, invoke, timeout)
    return wrapped

filters.use_client_filter_middleware(logging_middleware)
chain = filters.middleware_client_filter()
chain(None, msg, lambda ctx, m, t: "result", 3.0)
```

The first middleware registered runs outermost. `middleware_client_filter`
and `middleware_server_filter` return `None` when no middleware is
registered. `register_client_filter`, `register_server_filter`, the
`register_pre_*`/`register_post_*` functions and `register_dispatch_reporter`
also exist as module-level functions acting on `filters.default_filters`.

## Endpoint selection and health

```python
from tarsrpc.endpoints import EndpointSelector
from tarsrpc.adapter import AdapterHealth

selector = EndpointSelector(["10.0.0.1:9000", "10.0.0.2:9000"], direct=True)
endpoint = selector.select()          # round-robin

health = AdapterHealth()
health.send_add()
health.fail_add()
just_blocked, needs_probe = health.check_active()
if just_blocked:
    selector.remove(endpoint)
```

In registry mode (`direct=False`) endpoints are supplied with
`update(active, inactive)`, kept in CRC-32 order of their key, filtered by
the optional `is_healthy` callback, and a random registered endpoint is used
when no healthy one is left.

## Admin commands

`Admin.notify(command)` understands `tars.viewversion`, `tars.setloglevel
LEVEL` (INFO, WARN, ERROR, DEBUG, NONE), `tars.dumpstack` (logs every
thread's stack), `tars.loadconfig NAME` (through `config_loader`),
`tars.connection`, `tars.gracerestart` (starts the current program again
with `GRACE_RESTART=1`, unless `on_restart` is replaced), and `tars.pprof
[PORT [SECONDS]]`, which serves thread stacks over HTTP under
`/debug/pprof/` for a limited time. Other commands go to handlers added with
`register`.

## HTTP statistics

```python
from tarsrpc.httpstat import StatMiddleware, HttpStatConfig

records = []
app = StatMiddleware(wsgi_app, HttpStatConfig(app_name="App.Server"), records.append)
```

The client address comes from `X-Real-Ip`, `X-Forwarded-For-Pound` or
`X-Forwarded-For`, else from `REMOTE_ADDR`. Status codes of 400 and above
count as failures unless `exception_status_checker` says otherwise.

## What this package does not do

It has no network transport: it neither opens connections to endpoints nor
runs an RPC server, and `AdapterHealth` only tracks counters while
`reconnect` is a callback you supply. It does not encode or decode request
and response packets, talk to a registry, node or statistics server, or
send the `StatRecord`s it builds anywhere; delivering them is up to the
reporter you pass in. There is no command-line program.