"""
Core extraction and analysis logic.

Nothing here starts processes or talks to the network. Subprocesses live
in infrastructure.video, the vision model behind core.analysis's
FrameConsumer protocol.
"""
