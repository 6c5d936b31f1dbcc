"""
Core primitives shared by the uploader and the publisher.
"""
