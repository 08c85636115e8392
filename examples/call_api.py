# %%
import sys

import requests

API_URL = "http://localhost:8000/render"
API_KEY = "supersecret"

def send_file(file_path, speed=25, amplitude=5, apply_low_pass_filter=False):
    with open(file_path, "rb") as f:
        files = {"file": f}
        params = {
            "speed": speed,
            "amplitude": amplitude,
            "apply_low_pass_filter": str(apply_low_pass_filter).lower(),
        }
        headers = {"X-API-Key": API_KEY}
        response = requests.post(API_URL, files=files, params=params, headers=headers)
    if response.ok:
        print("✅ Success")
        result = response.json()
        for entry in result["info"]:
            print(entry["key"], entry["value"], entry.get("unit") or "")
        return result["svg"]
    else:
        print("❌ Error", response.status_code, response.text)

if __name__ == "__main__":
    if len(sys.argv) != 3:
        sys.exit("usage: python call_api.py INPUT.dcm OUTPUT.svg")
    file_path, output_path = sys.argv[1:]
    print("Sending DICOM file...")
    svg = send_file(file_path, apply_low_pass_filter=True)
    if svg:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(svg)
