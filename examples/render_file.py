# %%
import sys

from dicomecg.ecg import DicomEcg

if __name__ == "__main__":
    if len(sys.argv) != 3:
        sys.exit("usage: python render_file.py INPUT.dcm OUTPUT.svg")
    file_path, output_path = sys.argv[1:]
    ecg = DicomEcg(file_path)
    print(ecg)
    result = ecg.render(speed=25, amplitude=10, apply_low_pass_filter=True)
    for entry in result.info:
        print(entry.key, entry.value, entry.unit or "")
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(result.svg)
