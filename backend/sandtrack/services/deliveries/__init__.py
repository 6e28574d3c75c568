"""Delivery lifecycle: status graph, state machine, trail synthesis and signatures."""
