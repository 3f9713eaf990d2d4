"""Booking pricing-and-availability engine: domain rules shared by tour and vehicle bookings."""
