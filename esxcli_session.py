import logging
import shlex
from dataclasses import dataclass

import paramiko

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 10.0
COMMAND_TIMEOUT = 30.0


class EsxcliError(Exception):
    def __init__(self, command, exit_status, message):
        self.command = command
        self.exit_status = exit_status
        super().__init__(f"'{command}' failed with exit status {exit_status}: {message}")


@dataclass
class EsxiCredentials:
    username: str
    password: str
    port: int = 22


def build_command(operation, **arguments):
    """
    Turn a dotted ESXCLI operation and its arguments into a command line.

    build_command("network.nic.get", nicname="vmnic0")
        -> "esxcli network nic get --nicname=vmnic0"
    """
    parts = ["esxcli"] + operation.split(".")
    for name, value in arguments.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        parts.append("--%s=%s" % (name.replace("_", "-"), shlex.quote(str(value))))
    return " ".join(parts)


def parse_esxcli_output(text):
    """
    Parse the indented "Key: value" listing esxcli prints for a single object.

    A key with nothing after the colon opens a nested section for the lines
    indented below it, e.g.

       Driver Info:
             Driver: ne1000
       Virtual Address: 00:50:56:5a:d3:c2

    becomes {"Driver Info": {"Driver": "ne1000"}, "Virtual Address": "00:50:56:5a:d3:c2"}.
    """
    result = {}
    # (indent, section dict, owning dict, key in owning dict)
    stack = [(-1, result, None, None)]

    def close_section():
        _, section, owner, key = stack.pop()
        if not section:
            owner[key] = ""

    for line in text.splitlines():
        if not line.strip():
            continue
        key, sep, value = line.strip().partition(":")
        if not sep:
            continue
        indent = len(line) - len(line.lstrip())
        while indent <= stack[-1][0]:
            close_section()

        section = stack[-1][1]
        key = key.strip()
        value = value.strip()
        if value:
            section[key] = value
        else:
            child = {}
            section[key] = child
            stack.append((indent, child, section, key))

    while len(stack) > 1:
        close_section()
    return result


class EsxcliSession:
    """ESXCLI over an SSH connection to a single ESXi host."""

    def __init__(self, hostname, credentials, timeout=CONNECT_TIMEOUT):
        self.hostname = hostname
        self.credentials = credentials
        self.timeout = timeout
        self.client = None

    def __enter__(self):
        if self.client is None:
            self.open()
        return self

    def __exit__(self, exc_type, exc_inst, exc_tb):
        self.close()

    def open(self):
        client = paramiko.SSHClient()
        client.load_system_host_keys()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        logger.debug("Opening SSH session to %s:%s", self.hostname, self.credentials.port)
        try:
            client.connect(
                hostname=self.hostname,
                port=self.credentials.port,
                username=self.credentials.username,
                password=self.credentials.password,
                timeout=self.timeout,
                look_for_keys=False,
                allow_agent=False,
            )
        except Exception:
            client.close()
            raise
        self.client = client
        return self

    def close(self):
        if self.client is not None:
            self.client.close()
            self.client = None

    def run(self, command):
        if self.client is None:
            raise RuntimeError(f"Session to {self.hostname} is not open")

        logger.debug("%s: %s", self.hostname, command)
        stdin, stdout, stderr = self.client.exec_command(command, timeout=COMMAND_TIMEOUT)
        output = stdout.read().decode("utf-8", errors="replace")
        exit_status = stdout.channel.recv_exit_status()
        if exit_status != 0:
            message = stderr.read().decode("utf-8", errors="replace").strip() or output.strip()
            raise EsxcliError(command, exit_status, message)
        return output

    def invoke(self, operation, **arguments):
        return parse_esxcli_output(self.run(build_command(operation, **arguments)))


def open_session(hostname, credentials):
    return EsxcliSession(hostname, credentials).open()
