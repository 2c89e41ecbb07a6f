"""Git operations used to fetch skill sources."""

from skills_install.gateway.git.abc import Git as Git
from skills_install.gateway.git.fake import FakeGit as FakeGit
from skills_install.gateway.git.real import RealGit as RealGit
