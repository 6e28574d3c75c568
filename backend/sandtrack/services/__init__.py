"""Business services: repositories, state machines and the lifecycle engine."""
