"""
Round trip through the remotecmd endpoint without opening a socket.

The client talks to an in-process FastAPI app, so this runs anywhere:
it writes a page, lists the directory, reads the page back and asks for a
command type the host has never heard of.
"""

import asyncio
import tempfile
from pathlib import Path

import httpx

from remotecmd import (
    CommandEnvelope,
    Dispatcher,
    FileLister,
    FileReader,
    FileWriter,
    RemoteCommandClient,
    Settings,
)
from remotecmd.server import create_app


async def main():
    with tempfile.TemporaryDirectory(prefix="remotecmd_demo_") as tmp:
        root = Path(tmp)
        app = create_app(Dispatcher(Settings()))
        transport = httpx.ASGITransport(app=app)

        async with RemoteCommandClient("http://demo/", transport=transport) as client:
            print(f"Ping: {(await client.test()).reason}")

            page = root / "index.html"
            result = await client.send(FileWriter(content="<h1>It works</h1>\n", files=[str(page)]))
            print(f"Write: {result.status.name}")

            lister = FileLister()
            lister.add_directory(str(root), "*.html")
            listing = await client.send(lister)
            for entry in listing.details.get(str(root), []):
                print(f"  {entry.name}  {entry.size} bytes  {entry.last_modified:%Y-%m-%d %H:%M}")

            content = await client.send(FileReader(file=str(page)))
            print(f"Read: {content.details!r}")

            missing = await client.send(CommandEnvelope("com.example.PhotoLoader"))
            print(f"Unknown type: {missing.status.name} ({missing.reason})")


if __name__ == "__main__":
    asyncio.run(main())
