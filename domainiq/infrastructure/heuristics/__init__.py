"""Local, network-free domain analysis used as the queue's fallback."""
