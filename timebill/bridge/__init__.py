"""Command bridge - envelope codec, transports, host socket session and UI client."""
