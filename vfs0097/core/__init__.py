"""Protocol engine for the VFS0097, independent of the USB library."""
