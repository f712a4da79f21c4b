# byohagent

Tools for preparing a Linux host to join a Kubernetes cluster as a
"bring your own host" node. The package does two jobs:

* **Kubernetes component installation.** It detects the host operating
  system from `hostnamectl` output, fetches the matching bundle of Kubernetes
  packages into a local cache with `imgpkg`, and runs the shell steps that
  install or remove them. At present Ubuntu 20.04 (x86-64) with Kubernetes
  v1.21, v1.22 and v1.23 is supported.
* **cloud-init execution.** It runs the `write_files` and `runCmd`
  directives of a bootstrap script.

## Installation

```
pip install byohagent
```

For the test suite, install with `pip install byohagent[test]` and run `pytest`.

Installing bundles needs `bash`, the `imgpkg` tool on `PATH`, and on Linux the
tools `socat`, `ebtables`, `ethtool` and `conntrack` (checked before an
installer is created by `new_installer`).

## Command line

`byoh-installer` is a small tool for trying out the installer:

```
byoh-installer --list-supported
byoh-installer --detect
byoh-installer --preview-os-changes --os Ubuntu_20.04.1_x86-64 --k8s v1.22.1
byoh-installer --install --bundle-repo registry.example.com --cache-path /var/lib/byoh/bundles --k8s v1.22.1
byoh-installer --uninstall --cache-path /var/lib/byoh/bundles --k8s v1.22.1
```

* `--list-supported` prints the supported OS filters, Kubernetes versions and
  bundle names as a table.
* `--detect` prints the host OS in normalized form, for example
  `Ubuntu_20.04.3_x86-64`.
* `--preview-os-changes` prints the shell commands an install and an
  uninstall would run for `--os` and `--k8s`. Nothing is executed.
* `--install` / `--uninstall` download the bundle from `--bundle-repo` into
  `--cache-path` (default `.`), or take it from the cache, and apply or undo
  the installation steps. With `--os` the OS detection and prechecks are
  skipped.

Only the first of these options that is given is acted on. Failures are
logged; the command exits with status 0.

## Library use

Preview the steps for a supported OS:

```python
from byohagent.installer import list_supported_os, list_supported_k8s, preview_changes

_, bundles = list_supported_os()
os_bundle = bundles[0]
k8s = list_supported_k8s(os_bundle)[0]
install, uninstall = preview_changes(os_bundle, k8s)
print(install)
```

An `Installer` from `new_unchecked(os_name, BundleType.K8S, "", logger, output_builder)`
runs in preview mode: with an empty download path every step is reported to
the output builder (`StringPrinter`, `LogPrinter` or `OutputBuilderCounter`
from `byohagent.output`) but no command is run.

Run a bootstrap script:

```python
from byohagent.cloudinit import ScriptExecutor
from byohagent.cmd_runner import CmdRunner
from byohagent.file_writer import FileWriter
from byohagent.template_parser import TemplateParser

executor = ScriptExecutor(
    write_files_executor=FileWriter(),
    run_cmd_executor=CmdRunner(),
    parse_template_executor=TemplateParser({"DefaultNetworkInterfaceName": "eth0"}),
)
executor.execute("""
write_files:
- path: /tmp/example.txt
  content: interface {{ .DefaultNetworkInterfaceName }}
runCmd:
- cat /tmp/example.txt
""")
```

File entries may carry `encoding` (`base64`/`b64` or `gzip+base64` and its
variants), `permissions` (octal), `owner` (`user:group`) and `append`.
`TemplateParser` fills `{{ .Field }}` actions from a mapping or an object.

Host labels in the `key=value` form can be collected with
`byohagent.labels.LabelFlags`, which accepts one pair or a comma-separated
list of pairs on each `set` call.

Installer failures raise subclasses of `byohagent.errors.InstallerError`,
such as `OsK8sNotSupportedError`, `BundleDownloadError` and
`BundleInstallError`.

## What this package does not do

It does not include a long-running host agent: nothing here registers the
host with a management cluster, watches for work, or handles a bootstrap
kubeconfig. The pieces above (installer, script executor, labels) are the
building blocks such an agent would use.