"""streetpass Quickstart Example.

This example builds a pipeline over in-memory stores, uploads one records
file the way a device would and shows what ends up in the contact store,
the audit log and an exposure query.
"""

import base64
import os
import struct
import time

import orjson
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from streetpass import Settings, clients
from streetpass.contacts import find_exposures
from streetpass.storage import MemoryDocumentStore, MemoryObjectStore

KEY = AESGCM.generate_key(bit_length=256)

UPLOADER = "uploader".ljust(21, "0")
NEIGHBOUR = "neighbour".ljust(21, "0")


def seal(plain: bytes) -> str:
    """Encrypt the way devices do: base64(IV | ciphertext | tag)."""
    iv = os.urandom(16)
    return base64.b64encode(iv + AESGCM(KEY).encrypt(iv, plain, None)).decode()


def temp_id(uid: str, start: int, expiry: int) -> str:
    return seal(uid.encode() + struct.pack(">II", start, expiry))


def build_upload(now: int) -> bytes:
    token = seal(orjson.dumps({"uid": UPLOADER, "uploadCode": "QS0001", "validTo": now + 3600}))
    msg = temp_id(NEIGHBOUR, now - 3600, now + 3600)

    # Twenty minutes of beacons, one a minute, plus one undecryptable record
    records = [
        {"msg": msg, "timestamp": (now - 1200 + 60 * i) * 1000, "rssi": -60, "modelC": "Pixel"}
        for i in range(21)
    ]
    records.append({"msg": "not-a-temp-id", "timestamp": now})
    return orjson.dumps({"token": token, "records": records, "events": []})


def main() -> None:
    """Run the quickstart example."""
    print("=" * 60)
    print("streetpass Quickstart Example")
    print("=" * 60)

    now = int(time.time())
    settings = Settings(encryption_keys=[base64.b64encode(KEY).decode()])
    documents = MemoryDocumentStore()
    state = clients.initialize(settings, objects=MemoryObjectStore(), documents=documents)

    try:
        # Example 1: Handle an upload
        print("\n1. Upload Handling")
        print("-" * 40)

        state.objects.write(settings.upload_bucket, "records/device-1.json", build_upload(now))
        result = state.pipeline.handle("records/device-1.json")
        print(f"Status: {result.status.value}")
        print(f"Archived as: {result.file_path}")

        # Example 2: Files outside the records folder are ignored
        print("\n2. Ignored Object")
        print("-" * 40)

        result = state.pipeline.handle("avatars/device-1.png")
        print(f"Status: {result.status.value}")

        # Example 3: What was stored
        print("\n3. Contact Document")
        print("-" * 40)

        document = documents.get(settings.contacts_collection, UPLOADER)
        for summary in document["records"]:
            print(f"  {summary['contactId']}: {summary['contactTime']:.0f}s")

        # Example 4: Audit log
        print("\n4. Audit Log")
        print("-" * 40)

        for entry in state.pipeline.audit.query():
            print(
                f"  {entry.file_name}: {entry.status.value} "
                f"received={entry.records_received} sent={entry.records_sent}"
            )

        # Example 5: Exposure query
        print("\n5. Exposure Query")
        print("-" * 40)

        report = find_exposures(documents, NEIGHBOUR, config={"min_contact": "15m"})
        print(orjson.dumps(report.to_dict(), option=orjson.OPT_INDENT_2).decode())
    finally:
        clients.shutdown()

    print("\n" + "=" * 60)
    print("Quickstart complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
