# cachex

cachex detects web cache poisoning that happens through unkeyed request headers. For each target URL it works through these steps:

1. It fetches a baseline response. The URL's query string is replaced by a random `cache=` parameter (five letters or digits), so the request gets a fresh, uncached copy.
2. It sends the request again, this time with the payload headers added, for example `X-Forwarded-Host: evil.com`.
3. It compares the two responses in this order: the `Location` header, then the status code, then the body. Before the comparison, `cache=` traces are removed from the `Location` header and the body. A modified response with status 429 does not count as a status-code change.
4. If the response changed and the persistence check is on, it picks a new cache-busting URL and sends the payload request there several times, concurrently. It then fetches that URL without the payloads. If the same change shows up in this clean response, the change is held in the cache.

A change that stays in the cache is reported as `[vuln]`, together with the cache-busting URL as a proof of concept. A change that does not stay is a `[tentative-vuln]`. Tentative results are not shown with the default configuration (`skip_tentative: true`).

In `single` scan mode, all payload headers are first sent together. Only when that changes the response is each header then tested on its own.

Requests ignore TLS certificate errors and never follow redirects. Proxy settings in the environment are not used; set a proxy with `--proxy-url` or in the configuration instead.

## Installation

```
pip install .
```

## Usage

Scan one URL:

```
cachex -u https://target.example.com/
```

Scan a list of URLs, or URLs piped on standard input. Blank lines are skipped.

```
cachex -l urls.txt
cat urls.txt | cachex
```

If `-u` is given, `-l` and standard input are ignored. If `-u` is not given, `-l` takes precedence over standard input.

### Options

| Flag | Meaning |
| --- | --- |
| `-h, --help` | Show the usage text with the current defaults |
| `-u, --url` | URL to scan |
| `-l, --list` | File with one URL per line |
| `-t, --threads` | Number of URLs scanned concurrently (must be positive) |
| `-m, --scan-mode` | `single` tests each header on its own; `multi` sends all headers at once |
| `-timeout, --request-timeout` | Total timeout in seconds, split evenly across connect, handshake and response |
| `-proxy, --proxy-url` | Proxy for all requests |
| `-np, --no-chk-prst` | Turn off the persistence check |
| `-pr, --prst-requests` | Number of poisoning requests sent during the persistence check |
| `-pt, --prst-threads` | Concurrency of the poisoning requests |
| `-j, --json` | Print results as single-line JSON |
| `-o, --output` | Also append results to this file |
| `-pcf, --payload-config-file` | YAML file with `payload_headers`, merged into the configured payloads |

If the persistence check is off and tentative results are skipped, no scan could report anything. The scanner therefore refuses to run and logs `no output: persistence check and tentative logging are both disabled`. With the default configuration, `-np` gives this error unless `skip_tentative` is set to `false` in `config.yaml`.

With `-o`, results are printed on standard output and also appended to the file, one per line, without colour. Diagnostics and the banner go to standard error.

## Configuration

The first run creates two files under `$HOME/.config/cachex/`:

- `config.yaml` holds the scanner settings. These are `scan_mode`, `threads`, `request_headers`, `client` (`dial_timeout`, `handshake_timeout`, `response_timeout`, `proxy_url`), `persistence_checker` (`enabled`, `num_requests_to_send`, `threads`) and `logger` (`log_error`, `log_mode`, `log_target`, `debug`, `skip_tentative`).
- `payloads.yaml` holds `payload_headers`, the headers that are injected.

Keys that are missing from a file keep their built-in defaults. Command-line flags override the values in the files.

## Library use

```python
from cachex.config import default_config
from cachex.runner import Scanner

cfg = default_config()
scanner = Scanner(
    urls=["https://target.example.com/"],
    output_file="",
    scanner_config=cfg.scanner,
    payload_config=cfg.payload,
)
results, errors = scanner.run()
for result in results:
    print(result.url, result.is_vulnerable, result.manipulation_type.json_name)
```

`Scanner.run` returns a list of `cachex.types.ScannerOutput` records and a list of the errors raised for URLs that could not be scanned. `ScannerOutput.to_json()` gives the JSON form of a result. `cachex.types.marshal_scanner_output` gives an indented version of the same data.

Other pieces can also be used on their own:

- `cachex.scanner.ScannerArgs` scans a single URL with `run()`, or many URLs with `run_batch_scan(urls, threads)`.
- `cachex.detector.detect_response_changes` compares two `cachex.client.Response` objects.
- `cachex.config.load_config(config_dir)` reads, and if needed creates, the YAML configuration in a directory of your choice.