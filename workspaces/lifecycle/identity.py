"""Resolve the identity invoking the CLI.

The binary is meant to be installed setuid root, so the *real* uid is the
caller.  Only the superuser is privileged.
"""

from __future__ import annotations

import os
import pwd

from workspaces.lifecycle.models.workspace import Actor


def resolve_actor() -> Actor:
    uid = os.getuid()
    return Actor(name=pwd.getpwuid(uid).pw_name, privileged=uid == 0)
