"""TickTick access layer: session handling, protocol routing, batch mutations."""
