"""Runtime modules: frame prediction, recorded streams, config and logging."""
