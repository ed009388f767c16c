# beatrelay

beatrelay streams WAV audio over WebSocket and estimates its tempo as it plays.
It is made of two services that work together:

- **streamer** (`beatrelay-streamer`): reads a WAV file and sends its samples
  as raw PCM over a WebSocket. By default it listens on `localhost:5000`.
- **relay** (`beatrelay-relay`): sits between a client and the streamer. By
  default it listens on `localhost:7000`. It forwards the client's requests to
  the streamer at `ws://localhost:5000`, gathers the PCM chunks into sliding
  windows, estimates the tempo of each window, and sends the results to the
  client.

## Installation

```
pip install .
```

To run the test suite as well:

```
pip install ".[test]"
pytest
```

## Running

Start the streamer first, then the relay:

```
beatrelay-streamer
beatrelay-relay
```

Options:

- `beatrelay-streamer --host HOST --port PORT --wav FILE` picks the listening
  address and the WAV file. The file defaults to `data/sample3.wav`, relative to
  the working directory.
- `beatrelay-relay --host HOST --port PORT` picks the listening address. The
  relay always connects upstream to `ws://localhost:5000`.

Both commands log at DEBUG level and stop on Ctrl-C. Messages up to 100 MiB
are accepted.

## Protocol

A client talks only to the relay. A session goes like this:

1. The client sends the text `open`. The relay passes it on to the streamer.
2. The streamer reads the WAV header and answers with one line of text:
   `<channels> <sample_rate> <bits_per_sample> <pcm_format>`, for example
   `2 44100 16 int`. `pcm_format` is `int` or `float`. The relay records this
   and passes the same text to the client.
3. The client sends the text `accept`. The relay passes it on to the streamer.
4. The streamer sends the audio as binary messages. Each holds 1024 frames of
   16-bit little-endian samples (the last may be shorter), and they are paced
   at the rate the audio plays. 8-bit files are widened to 16 bits. Float files
   and files wider than 16 bits produce no audio messages.
5. The relay collects the chunks. Each time it holds 200, it joins the oldest
   100 into a window and drops them. For each window it sends the client one
   binary MessagePack map with these keys:
   - `pcm`: the window's raw PCM bytes, encoded as an array of byte values
   - `bpm`: the tempo estimated for the window, as a float (0.0 when the
     window holds no onsets)

Text other than `open` and `accept` from the client is ignored by the relay;
any non-text message from the client ends the session with an error. When
either side closes, the relay closes the other side with the same code and
reason (code 1000 when the original code may not be sent), and the session
ends as soon as any part of it finishes.

The streamer answers only `open` and `accept`; any other text or any non-text
message ends its session with an error.

## Library use

The pieces can also be used on their own:

- `beatrelay.audio.AudioInfo.parse` reads the audio-info line and
  `AudioInfo.to_text` writes it. `SharedAudioInfo` holds the info for several
  tasks; its `get` raises `AudioInfoUndefinedError` until `set` is called.
- `beatrelay.wav.read_spec`, `wave_analyzer` and `iter_pcm_chunks` read the
  header and the samples of a WAV file; `chunk_interval` gives the length of a
  chunk in seconds.
- `beatrelay.windowing.SlidingWindow` does the chunk windowing described
  above, and `pcm_data_processing` runs it between two `asyncio.Queue`s
  (`None` ends the stream).
- `beatrelay.tempo.pcm_to_samples` turns 16-bit PCM bytes into samples in
  [-1, 1), and `estimate_tempo` estimates their BPM with a spectral-flux onset
  envelope and autocorrelation.
- `beatrelay.packet.MessagePack` encodes and decodes the messages sent to the
  client.
- `beatrelay.relay.websocket_processing` and
  `beatrelay.streamer.websocket_processing` run one session over an open
  connection; `serve` in each module runs the server.

Errors raised by the services are `beatrelay.errors.HandlerError` subclasses,
`AnalyzerError` or `StreamerError`. `beatrelay.errors.to_app_error` maps any
exception to an `AppError`, whose `to_response` gives an HTTP status code and a
`{"message": ...}` body.

## What it does not do

beatrelay has no client of its own: it provides the two servers, and a
WebSocket client that speaks the protocol above has to be supplied separately.
The `DelayFlag` enum names delivery phases but nothing in the package acts on
it yet.