from src.optimizer.cli import main
import sys


def run():
    if len(sys.argv) != 2:
        print("Usage: python show_results.py <article_id>")
        sys.exit(1)

    try:
        sys.exit(main(["show", sys.argv[1]]))
    except Exception as e:
        print(f"\nError: {str(e)}")
        print("\nPlease check:")
        print("1. MongoDB connection")
        print("2. Article ID format")
        print("3. Database permissions")
        sys.exit(1)


if __name__ == "__main__":
    run()
