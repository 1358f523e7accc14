from __future__ import annotations

from promotion_gate.config import get_settings
from promotion_gate.governance.processes import ProcessStore
from promotion_gate.governance.records import BuildRecordStore


def main() -> None:
    settings = get_settings()
    processes = ProcessStore(settings)
    BuildRecordStore(settings)
    print(f"Demo environment seeded: {', '.join(processes.names())} configured in {settings.PROCESSES_PATH}.")


if __name__ == '__main__':
    main()
