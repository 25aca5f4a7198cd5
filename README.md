# reactornet

reactornet is a TCP networking library built on the "one loop per thread"
reactor pattern. A main event loop accepts connections and hands each one to
a sub-loop chosen round-robin from a pool of loop threads. Every loop
multiplexes its sockets with the operating system's poller (epoll where
available, otherwise poll; set `REACTORNET_USE_POLL` to force poll). It also
runs timers and any callbacks queued to it from other threads.

## What it provides

- `reactornet.event_loop.EventLoop`: the reactor. It supports `loop()`,
  `quit()`, `run_in_loop()`, `queue_in_loop()`, and the timer helpers
  `run_at()`, `run_after()`, `run_every()` and `cancel()`. Only one loop may
  exist per thread at a time; `close()` releases it.
- `reactornet.event_loop_thread.EventLoopThread` and
  `reactornet.event_loop_thread_pool.EventLoopThreadPool`: loops that run in
  their own threads. The pool hands them out with `get_next_loop()`.
- `reactornet.tcp_server.TcpServer` and `reactornet.tcp_client.TcpClient`:
  the TCP server and client.
- `reactornet.tcp_connection.TcpConnection`: one established connection,
  with `send()`, `shutdown()` and `force_close()`.
- `reactornet.connector.Connector`: a non-blocking connector. After a failed
  attempt it waits before retrying. The wait starts at 500 ms and doubles
  each time, up to 30 s.
- `reactornet.buffer.Buffer`: a growable byte buffer. It has a readable
  region, a writable region and a small prependable region in front.
- `reactornet.codec.LengthHeaderCodec` and `encode()`: message framing. Each
  message gets a 4-byte big-endian length prefix.
- `reactornet.http`: a small HTTP/1.x server (`reactornet.http.server.HttpServer`),
  together with request parsing (`HttpContext`, `HttpRequest`) and response
  building (`HttpResponse`).

## Buffers and framing

```python
from reactornet.buffer import Buffer
from reactornet.codec import encode

buf = Buffer()
buf.append(b"GET / HTTP/1.1\r\n\r\n")
print(buf.readable_bytes())           # 18
print(buf.find_crlf())                # 14
data = buf.retrieve_all_as_bytes()    # the buffer is empty again

frame = encode(b"hello")              # b"\x00\x00\x00\x05hello"
```

`LengthHeaderCodec.on_message` takes the received bytes off a connection's
input buffer and rebuilds whole messages from them. It hands each complete
message to your callback. A length below 0 or above 65535 is treated as a
protocol error, and the codec shuts down the connection.

## Ready-made programs

Installing the package also installs two commands.

An echo server sends back whatever it receives and then closes its write
side. By default it listens on 127.0.0.1:7890 with 6 I/O threads; `--ip`,
`--port` and `--threads` change that:

```
reactornet-echo
```

A chat server sends every length-prefixed message it gets to all connected
clients:

```
reactornet-chat-server 127.0.0.1 9000
```

## What is not included

There is no chat client command. To talk to the chat server, build a client
from `TcpClient` and `LengthHeaderCodec`: set the client's
`message_callback` to the codec's `on_message`, and frame outgoing lines
with `LengthHeaderCodec.send`.

## Logging

`reactornet.logger` writes lines of the form `[LEVEL]YYYY-MM-DD hh:mm:ss : message`
to standard output. The helpers are `log_info`, `log_error` and `log_debug`
(the last only when `Logger.instance().debug_enabled` is set). `log_fatal`
writes its message and then ends the process.