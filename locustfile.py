from locust import HttpUser, task, between

SAMPLE_COMPLAINTS = [
    ("water_supply", "Burst water main flooding the street", "MG Road"),
    ("roads", "Small pothole near the corner", "Church Street"),
    ("electricity", "Sparking wires near the bus stop", None),
]


class ComplaintUser(HttpUser):
    wait_time = between(0.2, 1.0)

    @task(3)
    def predict(self):
        category, description, location = SAMPLE_COMPLAINTS[
            self.environment.runner.stats.total.num_requests % len(SAMPLE_COMPLAINTS)
        ]
        self.client.post(
            "/priority/predict",
            json={"category": category, "description": description, "location": location},
        )

    @task(1)
    def status(self):
        self.client.get("/model/status")

    @task(1)
    def readiness(self):
        self.client.get("/health/ready")
