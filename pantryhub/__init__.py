"""pantryhub - users, food pantries and pantry access on a document store."""
