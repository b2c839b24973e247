# relaydns

A small UDP DNS server. It keeps A and AAAA records it has seen in an
in-memory cache and answers from them until they expire. Queries it
cannot answer from the cache are relayed to public upstream resolvers
(8.8.8.8:53, 8.8.4.4:53, 1.1.1.1:53, 8.8.8.8:853, the first one that
can be reached), and the A and AAAA records in the reply are cached.
Clients that send more requests per second than a set limit are refused
for five minutes.

## Installation

```
pip install .
```

## Running

The listening port comes from the `udp_port` variable. The server
expects a `.env` file (by default in the working directory) and loads it
without overriding variables already set in the environment:

```
udp_port=8530
```

Start the server:

```
relaydns
```

Options:

- `--env-file PATH` – the file to load instead of `.env`. The server
  exits with status 1 if the file does not exist, if `udp_port` is unset
  or not a number, or if the port cannot be bound.
- `--rate N` – requests per second allowed for each client address
  (default 20).

It listens on `0.0.0.0` at that port, logs at INFO level to standard
error, and runs until it receives SIGINT or SIGTERM. Try it with any DNS
client:

```
dig @127.0.0.1 -p 8530 example.com A
```

## Using it as a library

- `relaydns.header` parses and encodes the 12-byte message header
  (`Header`, `Flags`, `parse_header`). `parse_header` raises a
  `DNSError` subclass (`FormatError`, `ServerFailure`,
  `NameErrorResponse`, `NotImplementedQuery`, `Refused`,
  `UnsupportedRcode`, `MalformedHeader`) for a short header, a zero
  question count, a non-zero response code or a non-zero opcode.
- `relaydns.question` reads names, following compression pointers
  (`read_name`), and question sections (`parse_questions`);
  `handle_questions` keeps only the questions the cache can answer.
  Decoding problems raise `NameDecodeError`.
- `relaydns.compress.Compressor` encodes names as labels, or as a
  pointer for a name it has already written at an earlier offset.
- `relaydns.cache.Cache` stores records with an expiry time;
  `start_cleaner` / `stop_cleaner` run `clean_expired` in a background
  thread.
- `relaydns.response.build_response` builds an answer from a cached
  record.
- `relaydns.limiter.Limiter` counts requests per second for each client
  address (`process_ip` returns the refusal reason, or None).
- `relaydns.upstream.UpstreamResolver` relays a raw query upstream (UDP,
  or TCP when `edns=True`) and caches the records in the reply; failures
  raise `UpstreamError`.
- `relaydns.server.DNSServer` ties these together. `start_udp` serves in
  a background thread and `close_udp` stops it; `handle_datagram` turns
  one request into the bytes sent back, with no socket involved.

```python
from relaydns.cache import Cache

cache = Cache()
cache.set(bytes([192, 0, 2, 1]), "example.com", 1, 1, 4, 300)
record = cache.get(1, "example.com")
print(record.ip, record.exp)
```

## What it does not do

- It listens on UDP only; there is no TCP listener.
- It holds no zone data of its own and is not authoritative for any
  domain; only A and AAAA records learned from upstream replies are
  cached. An upstream reply holding any other record type (a CNAME, for
  instance) is reported as an error.
- Errors, refusals and rate-limit messages are sent back to the client
  as plain text, not as DNS messages with a response code.
- The TTL written in an answer built from the cache is the seconds field
  of the record's expiry time, not the time the record has left.
- The cache lives in memory only and is lost when the server stops.

## Tests

```
pip install ".[test]"
pytest
```