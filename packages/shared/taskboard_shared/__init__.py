"""Wire schemas shared by the sync server and its clients."""
