"""
Business services: registration workflows, QR passes, email dispatch, storage and realtime events.
"""
