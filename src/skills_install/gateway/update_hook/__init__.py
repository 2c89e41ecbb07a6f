"""External update command invoked after reconciliation."""

from skills_install.gateway.update_hook.abc import UpdateHook as UpdateHook
from skills_install.gateway.update_hook.fake import FakeUpdateHook as FakeUpdateHook
from skills_install.gateway.update_hook.real import RealUpdateHook as RealUpdateHook
