"""Parking Ticket Pal API"""
