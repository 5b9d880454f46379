"""
Sample data generator for populating the booking store with valid bookings
Every booking goes through BookingService, so the generated data obeys the
same rules as operator input
"""
from datetime import date, timedelta
import random
from faker import Faker
from typing import List, Optional
import sys
import os

# Add parent directory to path for imports
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import Booking, BoardingStatus, MAX_SEATS_PER_BOOKING, TOTAL_SEATS, SEAT_COLUMNS, all_seat_ids
from database.database import get_db_manager
from backend.booking_repository import BookingRepository, create_repository
from backend.booking_service import BookingService


class DataGenerator:
    """Generate realistic bookings for the bus boarding system"""

    def __init__(self, service: Optional[BookingService] = None, seed: Optional[int] = None):
        """
        Initialize data generator

        Args:
            service: Booking service to book through (defaults to one on the configured store)
            seed: Random seed for reproducibility
        """
        if seed is not None:
            random.seed(seed)
            Faker.seed(seed)

        self.faker = Faker('en_IN')
        self.service = service or BookingService(create_repository())

    def generate_mobile_number(self) -> str:
        """10-digit Indian mobile number starting with 6-9"""
        return self.faker.numerify(text=random.choice('6789') + '#########')

    def _pick_group_seats(self, free_seats: List[str], group_size: int) -> List[str]:
        """Prefer seats in one row, spill into neighbouring rows like a real group would"""
        anchor = random.choice(free_seats)
        anchor_row = int(anchor[1:])
        by_distance = sorted(free_seats, key=lambda seat: (abs(int(seat[1:]) - anchor_row), seat))
        return by_distance[:group_size]

    def generate_bookings(self, travel_date: date, count: int = 10,
                          boarded_ratio: float = 0.0, repeat_mobile_rate: float = 0.2) -> List[Booking]:
        """
        Generate bookings for one travel date

        Args:
            travel_date: Date to book
            count: Number of bookings to attempt
            boarded_ratio: Fraction of created bookings to mark as boarded
            repeat_mobile_rate: Probability a booking reuses an earlier mobile number

        Returns:
            List of created bookings
        """
        bookings = []
        mobiles: List[str] = []

        print(f"Generating {count} bookings for {travel_date.isoformat()}...")

        for i in range(count):
            free_seats = sorted(set(all_seat_ids()) - self.service.repository.booked_seats(travel_date))
            if not free_seats:
                print("  Bus is full, stopping early")
                break

            if mobiles and random.random() < repeat_mobile_rate:
                mobile = random.choice(mobiles)
            else:
                mobile = self.generate_mobile_number()
                mobiles.append(mobile)

            allowance = self.service.remaining_seats_for_mobile(mobile, travel_date)
            if allowance == 0:
                continue

            group_size = min(random.choice([1, 1, 2, 2, 3, 4, MAX_SEATS_PER_BOOKING]), allowance, len(free_seats))
            seats = self._pick_group_seats(free_seats, group_size)

            result = self.service.create_booking(travel_date, mobile, seats)
            if result.success:
                bookings.append(result.booking)
            else:
                print(f"  Error creating booking: {result.message}")

            if (i + 1) % 10 == 0:
                print(f"  Created {len(bookings)}/{i + 1} bookings")

        for booking in random.sample(bookings, int(len(bookings) * boarded_ratio)):
            self.service.update_boarding_status(booking.booking_id, BoardingStatus.BOARDED)
            booking.boarding_status = BoardingStatus.BOARDED

        print(f"Generated {len(bookings)} bookings")
        return bookings

    def generate_sample_dataset(self, days: int = 3, bookings_per_day: int = 12):
        """
        Generate a small dataset starting today

        Returns:
            Dictionary of travel date -> created bookings
        """
        print("Generating sample dataset...")
        today = self.service.clock().date()

        dataset = {}
        for offset in range(days):
            travel_date = today + timedelta(days=offset)
            # Today's bus is half way through boarding
            ratio = 0.5 if offset == 0 else 0.0
            dataset[travel_date] = self.generate_bookings(travel_date, count=bookings_per_day, boarded_ratio=ratio)

        total = sum(len(b) for b in dataset.values())
        print("\n" + "=" * 60)
        print("SAMPLE DATASET GENERATION COMPLETE")
        print("=" * 60)
        print(f"Days: {days}")
        print(f"Bookings: {total}")
        print(f"Seats per bus: {TOTAL_SEATS} ({len(SEAT_COLUMNS)} columns)")
        print("=" * 60)

        return dataset


def main():
    """Main function for command-line usage"""
    import argparse

    parser = argparse.ArgumentParser(description='Generate sample bookings for the bus boarding system')
    parser.add_argument('--days', type=int, default=3, help='Number of travel dates starting today')
    parser.add_argument('--bookings', type=int, default=12, help='Bookings to attempt per day')
    parser.add_argument('--seed', type=int, help='Random seed for reproducibility')
    parser.add_argument('--memory', action='store_true', help='Use an in-memory store instead of PostgreSQL')

    args = parser.parse_args()

    if args.memory:
        repository = BookingRepository()
    else:
        get_db_manager().create_tables()
        repository = create_repository()
    generator = DataGenerator(service=BookingService(repository), seed=args.seed)
    generator.generate_sample_dataset(days=args.days, bookings_per_day=args.bookings)


if __name__ == '__main__':
    main()
