import csv
import random

def generate_mock_candidates(filename="mock_candidates_30.csv", count=30):
    # Base coordinate roughly mapping to central Bangkok, where the pickup of the
    # simulated request sits.
    # Drivers are scattered up to ~25 km around it so every radius has something to show.
    base_lat = 13.7000
    base_lon = 100.5000

    first_names = ["Somchai", "Anan", "Niran", "Prasert", "Kittisak", "Wichai", "Suda", "Malee"]
    last_names = ["Srisuk", "Chaiyo", "Thongdee", "Boonmee", "Saetang", "Rattanakul"]

    with open(filename, mode='w', newline='') as file:
        writer = csv.writer(file)
        writer.writerow(["driver_id", "first_name", "last_name", "current_latitude",
                         "current_longitude", "average_rating", "offered_price"])

        for i in range(count):
            driver_id = f"DRV-{str(i+1).zfill(3)}"

            # +/- 0.23 degrees is roughly +/- 25 km at this latitude
            lat = base_lat + (random.random() - 0.5) * 0.46
            lon = base_lon + (random.random() - 0.5) * 0.46

            rating = round(random.uniform(3.0, 5.0), 1)
            price = random.randrange(300, 1500, 50)

            writer.writerow([driver_id, random.choice(first_names), random.choice(last_names),
                             round(lat, 6), round(lon, 6), rating, price])

    print(f"Successfully generated {count} mock candidates into '{filename}'.")

if __name__ == "__main__":
    generate_mock_candidates()
