# profile_recalculate.py
import cProfile
import pstats
from datetime import datetime, timedelta

from fastapi.testclient import TestClient
from autoplanner.main import app


def seed_tasks(client: TestClient, count: int = 50):
    base = datetime.now().replace(second=0, microsecond=0)
    for i in range(count):
        client.post("/tasks/", json={
            "title": f"Profile task {i}",
            "deadline": (base + timedelta(days=1 + i % 14)).isoformat(),
            "priority": ("high", "medium", "low")[i % 3],
            "min_work_session": 30 + (i % 4) * 15,
        })


def profile_recalculate():
    client = TestClient(app)
    seed_tasks(client)

    profiler = cProfile.Profile()
    profiler.enable()

    # a single full recalculation through the API
    resp = client.post("/schedule/recalculate")
    print("Status code:", resp.status_code)
    print("Conflicts:", len(resp.json()["conflicts"]))

    profiler.disable()
    profiler.dump_stats("recalculate.prof")
    print("Profile data written to recalculate.prof")

    ps = pstats.Stats(profiler).sort_stats("cumtime")
    ps.print_stats(20)


if __name__ == "__main__":
    profile_recalculate()
