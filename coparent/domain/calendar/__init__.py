"""Calendar domain - events, reminders and the custody schedule approval workflow"""
