"""Remote shell command lines used during a deployment.

All paths are shell-quoted.
"""

import shlex
from typing import Optional

PERMISSION_DENIED = "Permission denied"


def _q(value: str) -> str:
    return shlex.quote(value)


def make_temp_dir() -> str:
    return "mktemp -d"


def unzip(archive: str, dest: str) -> str:
    return f"unzip -q {_q(archive)} -d {_q(dest)}"


def untar(archive: str, dest: str) -> str:
    return f"tar -zxf {_q(archive)} -C {_q(dest)}"


def list_containers(name: str) -> str:
    return f"docker ps --filter {_q(f'name={name}')}"


def parse_container_id(output: str) -> Optional[str]:
    """Pick the container id out of ``docker ps`` output.

    The first line is the table header; the id is the first field of the
    second line.
    """
    rows = output.splitlines()
    if len(rows) < 2:
        return None
    fields = rows[1].split()
    return fields[0] if fields else None


def remove_in_container(cid: str, path: str) -> str:
    return f"docker exec {_q(cid)} rm -fr {_q(path)}"


def copy_into_container(src: str, cid: str, dest: str) -> str:
    return f"docker cp {_q(src)} {_q(f'{cid}:{dest}')}"


def _privileged(cmd: str, sudo: bool, interactive: bool) -> str:
    if not sudo:
        return cmd
    # -n: never prompt
    return f"sudo {cmd}" if interactive else f"sudo -n {cmd}"


def remove_file(path: str) -> str:
    return f"rm -f {_q(path)}"


def remove_tree(path: str, sudo: bool = False, interactive: bool = True) -> str:
    return _privileged(f"rm -fr {_q(path)}", sudo, interactive)


def move(src: str, dest: str, sudo: bool = False, interactive: bool = True) -> str:
    return _privileged(f"mv {_q(src)} {_q(dest)}", sudo, interactive)
