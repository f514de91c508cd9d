"""
Apache virtual host editor.

Each website owns one delimited region of a shared Apache configuration file::

    # BEGIN website:100 config
    LISTEN 192.168.0.1:80
    <VirtualHost 192.168.0.1:80>
       ServerAdmin webmaster@example.com
       ServerName example.com
       DocumentRoot /home/httpd/domains/example.com
    </VirtualHost>
    # END website:100 config

Applying a website's hosts drops its existing region, appends a freshly
rendered one at the end of the file and restarts Apache. The whole
read-modify-write-restart runs under the config lock file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from remotecmd import locking
from remotecmd._types import ArgumentNode
from remotecmd.commands._base import Command, required_value
from remotecmd.config import Settings
from remotecmd.errors import ResourceError, ValidationError
from remotecmd.process import check_call
from remotecmd.results import CommandResult

logger = logging.getLogger(__name__)

INDENT = "   "

# Children of <virtual_host> that are not copied through as extra directives.
RESERVED_TAGS = frozenset(
    {
        "is_name_virtual_host",
        "ip",
        "port",
        "server_admin",
        "ServerAdmin",
        "server_name",
        "server_alias",
        "ServerName",
        "document_root",
        "DocumentRoot",
    }
)


def begin_sentinel(website_id: str) -> str:
    return f"# BEGIN website:{website_id} config"


def end_sentinel(website_id: str) -> str:
    return f"# END website:{website_id} config"


@dataclass(slots=True)
class VirtualHost:
    """
    One ``<VirtualHost>`` block of a website.

    Attributes:
        ip: Address the host listens on.
        server_admin: ServerAdmin directive.
        server_name: ServerName directive.
        document_root: DocumentRoot directive.
        port: Listening port.
        server_alias: Optional ServerAlias directive.
        is_name_based: Name-based hosts get no LISTEN line.
        directives: Extra directives, rendered in order after DocumentRoot.
    """

    ip: str
    server_admin: str
    server_name: str
    document_root: str
    port: str = "80"
    server_alias: str | None = None
    is_name_based: bool = False
    directives: list[ArgumentNode] = field(default_factory=list)

    @classmethod
    def from_node(cls, node: ArgumentNode) -> VirtualHost:
        """
        Build a host from a ``<virtual_host>`` argument block.

        Raises:
            ValidationError: If ip, server_admin, server_name or document_root
                is missing.
        """
        ip = node.child_value("ip")
        if ip is None:
            raise ValidationError("ip not defined in virtual host block")
        server_admin = required_value(node, "server_admin", f"server_admin not defined for virtual host: {ip}")
        server_name = required_value(node, "server_name", f"server_name not defined for virtual host: {ip}")
        document_root = required_value(
            node, "document_root", f"document_root not defined for virtual host: {server_name}"
        )
        return cls(
            ip=ip,
            server_admin=server_admin,
            server_name=server_name,
            document_root=document_root,
            port=node.child_value("port") or "80",
            server_alias=node.child_value("server_alias"),
            is_name_based=(node.child_value("is_name_virtual_host") or "").strip().lower() == "true",
            directives=[child for child in node if child.name not in RESERVED_TAGS],
        )

    def to_node(self) -> ArgumentNode:
        node = ArgumentNode("virtual_host")
        node.add("is_name_virtual_host", "true" if self.is_name_based else "false")
        node.add("ip", self.ip)
        node.add("port", self.port)
        node.add("server_admin", self.server_admin)
        node.add("server_name", self.server_name)
        if self.server_alias:
            node.add("server_alias", self.server_alias)
        node.add("document_root", self.document_root)
        node.children.extend(self.directives)
        return node

    @property
    def address(self) -> str:
        return f"{self.ip}:{self.port}"


def render_directive(node: ArgumentNode, indent: str = INDENT) -> list[str]:
    """
    Render one extra directive and its children.

    A leaf renders as ``NAME VALUE`` (or just ``VALUE`` when named COMMENT);
    anything else renders as a ``<NAME>`` block with its children indented one
    more level.
    """
    if node.is_leaf and node.value is not None:
        if node.name == "COMMENT":
            return [indent + node.value]
        return [f"{indent}{node.name} {node.value}"]

    lines = [f"{indent}<{node.name}>"]
    for child in node:
        lines.extend(render_directive(child, indent + INDENT))
    lines.append(f"{indent}</{node.name}>")
    return lines


def render_host(host: VirtualHost) -> list[str]:
    """Render a host as the lines of its ``<VirtualHost>`` block."""
    lines = []
    if not host.is_name_based:
        lines.append(f"LISTEN {host.address}")
    lines.append(f"<VirtualHost {host.address}>")
    lines.append(f"{INDENT}ServerAdmin {host.server_admin}")
    lines.append(f"{INDENT}ServerName {host.server_name}")
    if host.server_alias is not None:
        lines.append(f"{INDENT}ServerAlias {host.server_alias}")
    lines.append(f"{INDENT}DocumentRoot {host.document_root}")
    for directive in host.directives:
        lines.extend(render_directive(directive))
    lines.append("</VirtualHost>")
    return lines


def strip_region(lines: Iterable[str], website_id: str) -> list[str]:
    """
    Drop blank lines and the website's delimited region.

    Raises:
        ResourceError: If the region's begin line has no matching end line.
    """
    begin, end = begin_sentinel(website_id), end_sentinel(website_id)
    kept = []
    found_begin = found_end = False
    for line in lines:
        if line == "":
            continue
        if line.startswith(begin):
            found_begin = True
        if found_begin and not found_end:
            if line.startswith(end):
                found_end = True
        else:
            kept.append(line)

    if found_begin and not found_end:
        raise ResourceError(
            f"Config file error. BEGIN tag found for website: {website_id}, but no END tag found"
        )
    return kept


def rewrite_config(lines: Iterable[str], website_id: str, hosts: list[VirtualHost]) -> list[str]:
    """
    Return the config lines with the website's region replaced by ``hosts``.

    The replacement region is always appended at the end of the file. Other
    regions are separated from what precedes them by a blank line.
    """
    out = []
    for line in strip_region(lines, website_id):
        if line.startswith("# BEGIN"):
            out.append("")
        out.append(line)

    out.append("")
    out.append(begin_sentinel(website_id))
    for i, host in enumerate(hosts):
        if i > 0:
            out.append("")
        out.extend(render_host(host))
    out.append(end_sentinel(website_id))
    return out


def change_custom_url(
    old_url: str | None,
    new_url: str | None,
    apache_settings: str | None,
    line_id: str | None,
    proxy_url: str,
) -> str | None:
    """
    Replace the proxy RewriteRule tagged with ``line_id`` in a settings block.

    Args:
        old_url: URL currently proxied, if any.
        new_url: URL to proxy from now on.
        apache_settings: Existing directive text; may be None.
        line_id: Marker identifying the rule line to replace.
        proxy_url: Target of the proxy rule.

    Returns:
        The rewritten settings, or None when ``new_url`` is None or unchanged.
        Dots and dashes in ``new_url`` are escaped in the rule pattern.
    """
    if new_url is None or new_url == old_url:
        return None

    kept = [
        line
        for line in (apache_settings or "").splitlines()
        if line and (line_id is None or line_id not in line)
    ]
    escaped = new_url.replace(".", "\\.").replace("-", "\\-")
    rule = f"RewriteRule ^{escaped}\\??(.*)    {proxy_url} [P,QSA,NC,L] {line_id}"
    return "".join(line + "\n" for line in kept + [rule])


class ApacheVirtualHostEditor(Command):
    """
    Replace a website's virtual host region in the Apache config and restart.

    Arguments::

        <website_id>100</website_id>
        <virtual_host>
          <is_name_virtual_host>false</is_name_virtual_host>
          <ip>192.168.0.1</ip>
          <port>80</port>
          <server_admin>webmaster@example.com</server_admin>
          <server_name>example.com</server_name>
          <server_alias>www.example.com</server_alias>
          <document_root>/home/httpd/domains/example.com</document_root>
          <ErrorLog>logs/example.com_error.log</ErrorLog>
        </virtual_host>
    """

    type_id = "remotecmd.ApacheVirtualHostEditor"

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        website_id: str | None = None,
        hosts: list[VirtualHost] | None = None,
    ) -> None:
        super().__init__(settings)
        self.website_id = website_id
        self.hosts = list(hosts or [])

    def init(self, arguments: ArgumentNode) -> None:
        self.website_id = required_value(arguments, "website_id")
        self.hosts = [VirtualHost.from_node(node) for node in arguments.children_named("virtual_host")]

    def to_arguments(self) -> ArgumentNode:
        args = ArgumentNode.root()
        args.add("website_id", self.website_id)
        args.children.extend(host.to_node() for host in self.hosts)
        return args

    async def run(self) -> CommandResult:
        if self.website_id is None:
            raise ValidationError("website_id not set")
        await self.apply(self.website_id, self.hosts)
        return CommandResult()

    async def apply(self, website_id: str, hosts: list[VirtualHost]) -> None:
        """
        Rewrite the website's region and restart Apache, under the config lock.

        Raises:
            ConfigurationError: If the config file, lock file or restart command
                is not configured.
            ResourceError: If the config file is missing or corrupt, or the
                restart command fails.
            LockTimeoutError: If the lock could not be obtained.
        """
        config_file: Path = self.settings.require("vhost_config_file")
        lock_file: Path = self.settings.require("vhost_lock_file")
        restart_command: str = self.settings.require("apache_restart_command")

        async with locking.hold(
            lock_file,
            website_id,
            max_wait=self.settings.lock_max_wait,
            poll_interval=self.settings.lock_poll_interval,
        ):
            if not config_file.exists():
                raise ResourceError(f"apache config file: {config_file} does not exist")

            lines = config_file.read_text(encoding="utf-8").splitlines()
            new_lines = rewrite_config(lines, website_id, hosts)
            config_file.write_text("\n".join(new_lines) + "\n", encoding="utf-8")
            logger.info(f"Wrote {len(hosts)} virtual host(s) for website {website_id} to {config_file}")

            await check_call(restart_command)
            logger.info("Apache restarted")
