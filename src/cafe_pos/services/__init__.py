"""Services subpackage - order entry, offers and catalog over a DataService."""
