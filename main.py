"""
Main entry point for the Bus Boarding System
Command-line access to booking, cancellation, boarding and the boarding plan
"""
import argparse
import sys

from database.database import get_db_manager
from backend.booking_repository import BookingRepository, create_repository
from backend.booking_service import BookingService
from backend.query import format_mobile_number, format_seats


def print_result(result) -> int:
    """Print an operation result and return the matching exit code"""
    print(result.message)
    if result.validation and not result.validation.valid:
        for field_name, message in result.validation.errors.items():
            print(f"  {field_name}: {message}")
    if result.success and result.booking:
        booking = result.booking
        print(f"  Booking ID: {booking.booking_id}")
        print(f"  Travel date: {booking.travel_date.isoformat()}")
        print(f"  Mobile: {format_mobile_number(booking.mobile_number)}")
        print(f"  Seats: {format_seats(booking.seats)}")
    return 0 if result.success else 1


def print_overview(overview) -> None:
    """Print the boarding table for one date"""
    print(f"Boarding plan for {overview.travel_date.isoformat()} ({overview.mode} order)")
    print("-" * 72)
    print(f"{'Seq':>4}  {'Booking ID':<20} {'Seats':<24} {'Mobile':<13} Status")
    for row in overview.rows:
        print(f"{row.sequence_number:>4}  {row.booking_id:<20} {format_seats(row.seats):<24} "
              f"{format_mobile_number(row.mobile_number):<13} {row.boarding_status.value}")
    print("-" * 72)

    stats = overview.statistics
    print(f"Bookings: {stats.total_bookings}  Passengers: {stats.total_passengers}  "
          f"Boarded: {stats.boarded_passengers}  Waiting: {stats.not_boarded_passengers}  "
          f"Progress: {stats.boarding_progress_percent}%")

    estimate = overview.time_estimate
    if estimate and estimate.natural_order_seconds:
        print(f"Natural order: {estimate.natural_order_message}  Optimal: {estimate.optimal_message}  "
              f"Saves: {estimate.savings_message} ({estimate.savings_percent}%)")

    if overview.next_to_board:
        print(f"Next to board: #{overview.next_to_board.sequence_number} {overview.next_to_board.booking_id}")
    elif overview.rows:
        print("All passengers have boarded.")


def build_parser():
    parser = argparse.ArgumentParser(description='Bus Boarding System')
    parser.add_argument('--memory', action='store_true',
                        help='Use an in-memory store (nothing survives the process)')
    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('init-db', help='Create the database tables')

    seed = subparsers.add_parser('seed', help='Generate sample bookings')
    seed.add_argument('--days', type=int, default=3)
    seed.add_argument('--bookings', type=int, default=12)
    seed.add_argument('--seed', type=int)

    book = subparsers.add_parser('book', help='Create a booking')
    book.add_argument('--date', required=True, help='Travel date (YYYY-MM-DD)')
    book.add_argument('--mobile', required=True)
    book.add_argument('--seats', required=True, help='Comma-separated seats, e.g. A1,B1')

    update = subparsers.add_parser('update', help='Change mobile number or seats of a booking')
    update.add_argument('booking_id')
    update.add_argument('--mobile')
    update.add_argument('--seats', help='Comma-separated seats')

    cancel = subparsers.add_parser('cancel', help='Cancel a booking')
    cancel.add_argument('booking_id')

    board = subparsers.add_parser('board', help='Toggle the boarding status of a booking')
    board.add_argument('booking_id')

    plan = subparsers.add_parser('plan', help='Show the boarding plan for a date')
    plan.add_argument('--date', help='Travel date (defaults to today)')
    plan.add_argument('--mode', choices=['optimal', 'natural'], default='optimal')
    plan.add_argument('--search', default='')
    plan.add_argument('--sort', choices=['sequence', 'bookingId', 'seats', 'mobile'], default='sequence')
    plan.add_argument('--desc', action='store_true')

    return parser


def split_seats(value):
    return [seat for seat in (value or '').split(',') if seat.strip()]


def main(argv=None):
    """Main entry point"""
    args = build_parser().parse_args(argv)

    if args.command == 'init-db':
        print("Initializing database...")
        get_db_manager().create_tables()
        print("Database ready!")
        return 0

    repository = BookingRepository() if args.memory else create_repository()
    if repository.is_fallback:
        print("Database unavailable, bookings will not be saved after exit.")
    service = BookingService(repository)

    code = run_command(args, service)
    if repository.recovered_from:
        print(repository.recovered_from.message)
    return code


def run_command(args, service) -> int:
    if args.command == 'seed':
        from data.data_generator import DataGenerator
        DataGenerator(service=service, seed=args.seed).generate_sample_dataset(
            days=args.days, bookings_per_day=args.bookings
        )
        return 0
    if args.command == 'book':
        return print_result(service.create_booking(args.date, args.mobile, split_seats(args.seats)))
    if args.command == 'update':
        seats = split_seats(args.seats) if args.seats else None
        return print_result(service.update_booking(args.booking_id, mobile_number=args.mobile, seats=seats))
    if args.command == 'cancel':
        return print_result(service.cancel_booking(args.booking_id))
    if args.command == 'board':
        return print_result(service.toggle_boarding_status(args.booking_id))
    if args.command == 'plan':
        print_overview(service.boarding_overview(
            args.date, mode=args.mode, search=args.search,
            sort_column=args.sort, direction='desc' if args.desc else 'asc'
        ))
        return 0
    return 1


if __name__ == '__main__':
    sys.exit(main())
