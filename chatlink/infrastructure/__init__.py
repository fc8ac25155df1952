"""
Infrastructure layer: configuration, logging and the network transport.
"""
