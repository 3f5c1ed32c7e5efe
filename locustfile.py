import uuid
from locust import HttpUser, task, between


class PlayerUser(HttpUser):
    """
    Simulated player hammering the engine from its own session.
    Run with: locust -f locustfile.py --host http://127.0.0.1:8000
    Start the server with RATE_LIMIT_ENABLED=false or every player hits 429s.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.session_headers = {"X-Session-Id": f"load-{uuid.uuid4().hex[:10]}"}
        self.balance = 1000

    @task(5)
    def play_dice(self):
        if self.balance < 10:
            self.balance = 1000
        with self.client.post(
            "/api/play",
            json={"stake": 10, "balance": self.balance, "game_type": "dice"},
            headers=self.session_headers,
            catch_response=True,
        ) as response:
            if response.status_code != 200:
                response.failure(f"Unexpected status {response.status_code}")
                return
            body = response.json()
            if body["won"] and body["payout"] <= 0:
                response.failure("Winning play with no payout")
                return
            self.balance = body["resulting_balance"]

    @task(1)
    def check_stats(self):
        with self.client.get("/api/stats", headers=self.session_headers, catch_response=True) as response:
            stats = response.json()
            if not 0 <= stats["wins_remaining"] <= 2:
                response.failure(f"Queue reports {stats['wins_remaining']} wins remaining")
